PROMPTS = {
    "lab": {
        "standard": """
        Create a virtual science lab simulation for a Level {level} student ({level_description}) based on this prompt: "{prompt}"

        The simulation should be in the {subject} subject area.

        Output ONLY a raw JSON object. No markdown tags, no backticks, no preamble.
        Schema:
        {{
          "title": "Clear, engaging title for the experiment",
          "description": "Detailed description of what the student will learn and do",
          "experimentType": "Type of experiment (e.g., titration, microscopy, circuit_building)",
          "virtualLab": {{
            "equipment": ["list", "of", "required", "equipment"],
            "chemicals": ["list", "of", "chemicals", "if", "applicable"],
            "procedure": ["Step 1: Detailed instruction", "Step 2: Next step"],
            "safetyNotes": ["Important safety consideration 1", "Safety note 2"]
          }},
          "objectives": ["Learning objective 1", "Learning objective 2"],
          "expectedOutcome": "What the student should observe or achieve",
          "estimatedDuration": 30,
          "difficulty": "beginner/intermediate/advanced"
        }}

        Make it age-appropriate for the level, educational, safe (virtual environment),
        interactive with clear steps and aligned with {subject} curriculum standards.
        """
    },
    "action": {
        "standard": """
        You are an AI tutor for a {subject} virtual lab simulation for Level {level} students.
        A student is performing the action "{action}" using "{equipment}" on target "{target}".

        Current game state: {game_state}

        Output ONLY a raw JSON object. No markdown tags, no prose.
        Schema:
        {{
          "actionDescription": "what happens when this action is performed",
          "scientificResult": "the scientific result",
          "explanation": "scientific explanation appropriate for the level",
          "visualEffect": "snake_case visual effect tag",
          "isCorrect": true,
          "observation": true,
          "safety": "safe/caution/dangerous",
          "hints": ["optional hint"],
          "nextSuggestion": "helpful next step",
          "experimentComplete": false
        }}
        Use engaging, age-appropriate language that encourages learning.
        """
    },
    "mixing": {
        "standard": """
        You are an AI tutor for a {subject} virtual lab simulation for Level {level} students.
        The student mixes "{chemical1}" with "{chemical2}".

        Current game state: {game_state}

        Output ONLY a raw JSON object. No markdown tags, no prose.
        Schema:
        {{
          "result": "what happens",
          "explanation": "scientific explanation appropriate for the level",
          "visualEffect": "snake_case visual effect tag",
          "resultSolution": {{"name": "...", "color": "...", "properties": "..."}},
          "safety": "safe/caution/dangerous",
          "educational": true,
          "nextSteps": ["next step"]
        }}
        """
    },
    "hint": {
        "standard": """
        You are an AI tutor for a {subject} virtual lab simulation for Level {level} students.
        The student is working on "{title}" and asks for a hint.
        They are struggling with: {struggling_area}

        Current game state: {game_state}

        Output ONLY a raw JSON object. No markdown tags, no prose.
        Schema: {{"text": "one short hint", "type": "tip/encouragement/direction/safety", "specificity": "general/specific"}}
        Never give away the full answer.
        """
    },
}
