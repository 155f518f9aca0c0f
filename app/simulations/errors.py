from typing import Optional
from fastapi import HTTPException


class SimulationNotFound(HTTPException):
    def __init__(self, simulation_id: str):
        super().__init__(status_code=404, detail=f"Simulation not found: {simulation_id}")


class StudentNotFound(HTTPException):
    def __init__(self, student_id: str):
        super().__init__(status_code=404, detail=f"Student not found: {student_id}")


class ParentNotFound(HTTPException):
    def __init__(self, parent_id: str):
        super().__init__(status_code=404, detail=f"Parent not found: {parent_id}")


class InvalidTransition(HTTPException):
    """Lifecycle transition outside the allowed table"""

    def __init__(self, source: str, target: str):
        self.source = source
        self.target = target
        super().__init__(
            status_code=400,
            detail=f"Invalid state transition from {source} to {target}"
        )


class SimulationNotActive(HTTPException):
    def __init__(self, simulation_id: str, status: str):
        self.status = status
        super().__init__(
            status_code=409,
            detail=f"Simulation {simulation_id} is {status}; actions require an active simulation"
        )


class ValidationFailed(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class RateLimited(HTTPException):
    def __init__(self, detail: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            status_code=429,
            detail=detail,
            headers={"Retry-After": str(retry_after)}
        )


class ConcurrentModification(HTTPException):
    def __init__(self, resource_id: str, detail: Optional[str] = None):
        super().__init__(
            status_code=409,
            detail=detail or f"{resource_id} was modified by another request, retry"
        )
