"""
Deterministic lab content used when the AI capability is unavailable or fails.
Every table here is plain data; selection logic lives in app.ai.services.
"""

# ==================== LEVEL FRAMING ====================

LEVEL_DESCRIPTIONS = {
    1: "elementary (ages 6-8): very simple, basic concepts, minimal equipment",
    2: "early primary (ages 8-10): simple concepts, basic equipment",
    3: "late primary (ages 10-12): intermediate concepts, standard equipment",
    4: "early secondary (ages 12-14): advanced concepts, multiple equipment",
    5: "advanced secondary (ages 14-16): complex concepts, sophisticated equipment",
}

# ==================== FALLBACK TEMPLATES ====================

FALLBACK_LABS = {
    "chemistry": {
        "title": "Acid-Base Titration Experiment",
        "description": "Learn about acid-base reactions by performing a virtual titration to determine the concentration of an unknown acid solution.",
        "experiment_type": "titration",
        "virtual_lab": {
            "equipment": [
                {"id": "eq_1", "name": "burette", "description": "Precise measuring device", "icon": "🔬", "category": "instruments"},
                {"id": "eq_2", "name": "conical flask", "description": "Glass container for reactions", "icon": "🥤", "category": "glassware"},
                {"id": "eq_3", "name": "pipette", "description": "Precision liquid transfer", "icon": "💉", "category": "tools"},
            ],
            "chemicals": [
                {"id": "chem_1", "name": "HCl solution", "concentration": "Unknown", "hazard": "dangerous", "color": "colorless", "icon": "🧪"},
                {"id": "chem_2", "name": "NaOH solution", "concentration": "0.1M", "hazard": "caution", "color": "colorless", "icon": "🧪"},
                {"id": "chem_3", "name": "phenolphthalein indicator", "concentration": "1%", "hazard": "safe", "color": "colorless", "icon": "🧪"},
            ],
            "procedure": [
                "Set up the burette and fill it with 0.1M NaOH solution",
                "Pipette 25.0ml of HCl solution into a conical flask",
                "Add 2-3 drops of phenolphthalein indicator to the flask",
                "Place the flask under the burette on a white tile",
                "Slowly add NaOH solution while swirling the flask",
                "Stop when the solution turns light pink",
                "Record the volume of NaOH used",
                "Calculate the concentration of HCl",
            ],
            "safety_notes": [
                "Wear safety goggles and lab coat",
                "Handle chemicals carefully",
                "Report any spills immediately",
                "Wash hands after the experiment",
            ],
        },
        "objectives": [
            "Understand acid-base neutralization reactions",
            "Learn to use laboratory equipment accurately",
            "Calculate molarity from titration data",
            "Observe color changes with indicators",
        ],
        "expected_outcome": "The colorless solution will turn light pink at the endpoint, indicating neutralization is complete.",
        "estimated_duration": 45,
    },
    "physics": {
        "title": "Simple Circuit Construction",
        "description": "Build and analyze simple electrical circuits to understand current, voltage, and resistance relationships.",
        "experiment_type": "circuit_building",
        "virtual_lab": {
            "equipment": [
                {"id": "eq_1", "name": "breadboard", "description": "Circuit construction platform", "icon": "🔌", "category": "tools"},
                {"id": "eq_2", "name": "LED", "description": "Light emitting diode", "icon": "💡", "category": "tools"},
                {"id": "eq_3", "name": "multimeter", "description": "Electrical measurement device", "icon": "⚡", "category": "instruments"},
            ],
            "chemicals": [],
            "procedure": [
                "Connect the battery pack to the breadboard",
                "Insert the LED into the breadboard",
                "Add a resistor in series with the LED",
                "Connect the circuit with jumper wires",
                "Test the circuit - LED should light up",
                "Use multimeter to measure voltage across components",
                "Try different resistor values and observe changes",
            ],
            "safety_notes": [
                "Use appropriate voltage levels",
                "Check connections before powering on",
                "Handle components carefully",
            ],
        },
        "objectives": [
            "Understand basic electrical circuits",
            "Learn Ohm's law relationships",
            "Practice using measuring instruments",
            "Observe effects of resistance on current",
        ],
        "expected_outcome": "LED will illuminate and brightness will vary with different resistor values.",
        "estimated_duration": 30,
    },
    "biology": {
        "title": "Microscopic Cell Observation",
        "description": "Explore the microscopic world by observing different types of cells and identifying their structures.",
        "experiment_type": "microscopy",
        "virtual_lab": {
            "equipment": [
                {"id": "eq_1", "name": "light microscope", "description": "Device for magnifying specimens", "icon": "🔬", "category": "instruments"},
                {"id": "eq_2", "name": "prepared slides", "description": "Sample specimens for observation", "icon": "📏", "category": "tools"},
                {"id": "eq_3", "name": "lens paper", "description": "For cleaning microscope lenses", "icon": "🧻", "category": "tools"},
            ],
            "chemicals": [
                {"id": "chem_1", "name": "methylene blue stain", "concentration": "1%", "hazard": "safe", "color": "blue", "icon": "🧪"},
            ],
            "procedure": [
                "Set up the microscope and adjust lighting",
                "Start with low magnification (4x objective)",
                "Place the prepared slide on the stage",
                "Focus using coarse adjustment knob",
                "Switch to higher magnification (10x, then 40x)",
                "Use fine adjustment for clear focus",
                "Observe and identify cell structures",
                "Draw what you observe",
            ],
            "safety_notes": [
                "Handle microscope and slides carefully",
                "Clean lenses with lens paper only",
                "Store microscope properly",
            ],
        },
        "objectives": [
            "Learn proper microscope usage",
            "Identify basic cell structures",
            "Understand magnification principles",
            "Practice scientific observation skills",
        ],
        "expected_outcome": "Clear observation of cell structures including nucleus, cytoplasm, and cell membrane.",
        "estimated_duration": 35,
    },
}

# ==================== DEFAULTS ====================

DEFAULT_EQUIPMENT = {
    "chemistry": [
        {"id": "eq_1", "name": "Beaker", "description": "Glass container for mixing solutions", "icon": "🥤", "category": "glassware"},
        {"id": "eq_2", "name": "Burette", "description": "Precise measuring device for liquids", "icon": "🔬", "category": "instruments"},
        {"id": "eq_3", "name": "Safety Goggles", "description": "Eye protection equipment", "icon": "🥽", "category": "tools"},
    ],
    "physics": [
        {"id": "eq_1", "name": "Multimeter", "description": "Electrical measurement device", "icon": "⚡", "category": "instruments"},
        {"id": "eq_2", "name": "Breadboard", "description": "Circuit construction platform", "icon": "🔌", "category": "tools"},
        {"id": "eq_3", "name": "Safety Goggles", "description": "Eye protection equipment", "icon": "🥽", "category": "tools"},
    ],
    "biology": [
        {"id": "eq_1", "name": "Microscope", "description": "Device for magnifying small objects", "icon": "🔬", "category": "instruments"},
        {"id": "eq_2", "name": "Prepared Slides", "description": "Sample specimens for observation", "icon": "📏", "category": "tools"},
        {"id": "eq_3", "name": "Safety Goggles", "description": "Eye protection equipment", "icon": "🥽", "category": "tools"},
    ],
}

DEFAULT_CHEMISTRY_CHEMICALS = [
    {"id": "chem_1", "name": "Distilled Water", "concentration": "Pure", "hazard": "safe", "color": "colorless", "icon": "💧"},
    {"id": "chem_2", "name": "Sodium Chloride", "concentration": "0.1M", "hazard": "safe", "color": "white", "icon": "🧂"},
    {"id": "chem_3", "name": "Phenolphthalein", "concentration": "1%", "hazard": "caution", "color": "colorless", "icon": "🧪"},
]

DEFAULT_PROCEDURE = [
    "Step 1: Set up equipment",
    "Step 2: Follow experimental procedure",
    "Step 3: Record observations",
]

DEFAULT_SAFETY_NOTES = [
    "Wear appropriate safety equipment",
    "Follow all laboratory protocols",
    "Report any issues immediately",
]

# Persistence-time repair defaults (plain entries, normalized before write)
REPAIR_EQUIPMENT = ["Basic laboratory equipment", "Safety goggles", "Lab notebook"]
REPAIR_PROCEDURE = ["Set up equipment", "Follow procedure", "Record observations"]
REPAIR_SAFETY_NOTES = ["Follow safety protocols", "Wear protective equipment"]
REPAIR_CHEMISTRY_CHEMICALS = ["Water", "Standard solutions"]

GAME_OBJECTIVES = {
    "chemistry": [
        "Learn about chemical reactions and molecular interactions",
        "Practice safe laboratory procedures",
        "Understand the importance of accurate measurements",
        "Observe and record experimental results",
    ],
    "physics": [
        "Understand fundamental physical principles",
        "Learn to use measurement instruments properly",
        "Explore cause and effect relationships",
        "Practice scientific problem-solving",
    ],
    "biology": [
        "Observe living organisms and biological structures",
        "Learn proper microscope techniques",
        "Understand biological processes",
        "Practice careful scientific observation",
    ],
}

TIME_LIMITS = {"chemistry": 45, "physics": 30}
DEFAULT_TIME_LIMIT = 40

SCORING_WEIGHTS = {"correct_action": 10, "observation": 5, "completion": 50}

# ==================== KEYWORD TABLES ====================

EQUIPMENT_ICONS = {
    "beaker": "🥤", "burette": "🔬", "microscope": "🔬", "multimeter": "⚡",
    "breadboard": "🔌", "pipette": "💉", "goggles": "🥽", "thermometer": "🌡️",
    "scale": "⚖️", "flask": "🧪", "slide": "📏",
}

EQUIPMENT_CATEGORIES = {
    "glassware": ["beaker", "flask", "tube", "cylinder"],
    "instruments": ["microscope", "multimeter", "thermometer", "scale", "burette"],
    "tools": ["goggles", "tongs", "spatula", "brush", "pipette"],
    "chemicals": ["acid", "base", "salt", "indicator"],
}

DANGEROUS_WORDS = ["acid", "concentrated", "strong"]
CAUTION_WORDS = ["base", "indicator", "salt"]

CHEMICAL_COLORS = {
    "water": "colorless",
    "acid": "colorless",
    "base": "colorless",
    "indicator": "pink",
    "salt": "white",
    "iodine": "brown",
    "copper": "blue",
}

# ==================== GAME FALLBACKS ====================

ACTION_RESULTS = {
    "use_equipment": {
        "action_description": "You picked up the {equipment} and placed it in the {target} area.",
        "scientific_result": "Equipment is now ready for use in your experiment.",
        "explanation": "Proper equipment handling is essential for accurate scientific results.",
        "visual_effect": "equipment_placed",
        "is_correct": True,
        "observation": True,
        "hints": ["Great choice! Now you can use this equipment for measurements."],
        "next_suggestion": "Try adding some chemicals to begin your experiment.",
        "safety": "safe",
    },
    "mix_chemicals": {
        "action_description": "You carefully mixed the chemicals in the {target}.",
        "scientific_result": "A chemical reaction is occurring between the substances.",
        "explanation": "When different chemicals combine, their molecules interact to form new compounds.",
        "visual_effect": "bubbling_reaction",
        "is_correct": True,
        "observation": True,
        "hints": ["Watch carefully for color changes or temperature differences!"],
        "next_suggestion": "Record your observations about what you see happening.",
        "safety": "safe",
    },
    "observe": {
        "action_description": "You observed the current state of your experiment carefully.",
        "scientific_result": "Making observations is a crucial part of the scientific method.",
        "explanation": "Scientists use their senses to gather data about what they see, hear, smell, and feel.",
        "visual_effect": "observation_highlight",
        "is_correct": True,
        "observation": True,
        "hints": ["Good observation skills! Try to notice colors, textures, and any changes."],
        "next_suggestion": "Record what you observed in your lab notebook.",
        "safety": "safe",
    },
    "measure": {
        "action_description": "You used the {equipment} to take precise measurements.",
        "scientific_result": "Accurate measurements are essential for scientific experiments.",
        "explanation": "Measuring tools help us quantify our observations and make experiments repeatable.",
        "visual_effect": "measurement_display",
        "is_correct": True,
        "observation": True,
        "hints": ["Precise measurements lead to better scientific results!"],
        "next_suggestion": "Compare your measurement with the expected values.",
        "safety": "safe",
    },
    "place_item": {
        "action_description": "You placed the {equipment} in the {target} area.",
        "scientific_result": "Your workspace is organised for the next step.",
        "explanation": "An organised workspace keeps experiments safe and repeatable.",
        "visual_effect": "equipment_placed",
        "is_correct": True,
        "observation": False,
        "hints": ["Keep frequently used equipment within reach."],
        "next_suggestion": "Use the equipment you just placed.",
        "safety": "safe",
    },
    "remove_item": {
        "action_description": "You removed the {equipment} from the {target} area.",
        "scientific_result": "The workspace has been cleared.",
        "explanation": "Clearing equipment you no longer need prevents accidental mix-ups.",
        "visual_effect": "equipment_removed",
        "is_correct": True,
        "observation": False,
        "hints": ["A tidy bench is a safe bench."],
        "next_suggestion": "Pick the next piece of equipment for your procedure.",
        "safety": "safe",
    },
}

GENERIC_ACTION_RESULT = {
    "action_description": "You performed the {action} action.",
    "scientific_result": "Action completed successfully.",
    "explanation": "This action helps you learn about scientific methods.",
    "visual_effect": "default_action",
    "is_correct": True,
    "observation": False,
    "hints": ["Keep experimenting to learn more!"],
    "next_suggestion": "Try another action to continue your experiment.",
    "safety": "safe",
}

MIXING_RESULTS = {
    "chemistry": {
        "result": "{chemical1} reacts with {chemical2} to form a new compound.",
        "explanation": "This is a classic chemical reaction where atoms rearrange to form new substances.",
        "visual_effect": "color_change_blue_to_pink",
        "result_solution": {
            "name": "{chemical1}-{chemical2} Solution",
            "color": "light pink",
            "properties": "Clear solution with slight fizzing",
        },
        "safety": "safe",
        "educational": True,
        "next_steps": [
            "Record the color change in your observations",
            "Measure the final temperature",
            "Test the pH of the resulting solution",
        ],
    },
    "physics": {
        "result": "The substances combine but no chemical reaction occurs.",
        "explanation": "This is a physical mixture where the substances retain their original properties.",
        "visual_effect": "mixing_no_reaction",
        "result_solution": {
            "name": "Physical Mixture",
            "color": "mixed",
            "properties": "Combined but separable substances",
        },
        "safety": "safe",
        "educational": True,
        "next_steps": [
            "Try to separate the mixture using physical methods",
            "Observe the different phases",
        ],
    },
    "biology": {
        "result": "The biological samples show interesting interactions under the microscope.",
        "explanation": "Different biological specimens can show various cellular structures when combined.",
        "visual_effect": "cellular_activity",
        "result_solution": {
            "name": "Biological Sample",
            "color": "clear with particles",
            "properties": "Living cells visible under magnification",
        },
        "safety": "safe",
        "educational": True,
        "next_steps": [
            "Examine under different magnifications",
            "Look for cellular structures",
        ],
    },
}

GENERIC_MIXING_RESULT = {
    "result": "The chemicals were mixed safely.",
    "explanation": "Chemical mixing can teach us about molecular interactions.",
    "visual_effect": "gentle_mixing",
    "result_solution": {
        "name": "Mixed Solution",
        "color": "clear",
        "properties": "Safe mixture",
    },
    "safety": "safe",
    "educational": True,
    "next_steps": ["Continue with your experiment"],
}

SUBJECT_HINTS = {
    "chemistry": [
        {"text": "Remember to always add acid to water, never water to acid!", "type": "safety"},
        {"text": "Look for color changes - they often indicate chemical reactions.", "type": "tip"},
        {"text": "You're doing great! Keep observing carefully.", "type": "encouragement"},
        {"text": "Try mixing small amounts first to see what happens.", "type": "direction"},
    ],
    "physics": [
        {"text": "Check your measurements twice for accuracy.", "type": "tip"},
        {"text": "Remember that electricity follows predictable patterns.", "type": "direction"},
        {"text": "Excellent work! You're thinking like a scientist.", "type": "encouragement"},
        {"text": "Always ensure circuits are disconnected before making changes.", "type": "safety"},
    ],
    "biology": [
        {"text": "Start with low magnification and gradually increase.", "type": "tip"},
        {"text": "Look for movement or structures in your samples.", "type": "direction"},
        {"text": "Great observation skills! Keep it up.", "type": "encouragement"},
        {"text": "Handle biological samples with care and proper hygiene.", "type": "safety"},
    ],
}

GENERIC_HINT = {
    "text": "Take your time and observe carefully. Science is about curiosity and discovery!",
    "type": "encouragement",
    "specificity": "general",
}
