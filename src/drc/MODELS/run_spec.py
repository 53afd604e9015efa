"""
Models describing a single container invocation and its outcome.
"""
from typing import List, Dict, Optional
from pydantic import BaseModel, ConfigDict, model_validator
from ..RUNNERS.interrupt import InterruptSignaler, InterruptHandler

class RunSpec(BaseModel):
    """
    Immutable input for one container run.

    The interrupt signaler and handler only take effect as a pair; with either
    one missing the run falls back to the engine's blocking wait.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    image_id: str
    command: List[str] = []
    environment: Dict[str, str] = {}
    network_id: Optional[str] = None
    remove: bool = False

    interrupt_signaler: Optional[InterruptSignaler] = None
    interrupt_handler: Optional[InterruptHandler] = None

    @model_validator(mode="after")
    def _check_image(self) -> "RunSpec":
        if not self.image_id.strip():
            raise ValueError("image_id must not be empty")
        return self

    @property
    def interruptible(self) -> bool:
        """Whether both interrupt collaborators were supplied."""
        return self.interrupt_signaler is not None and self.interrupt_handler is not None

    def environment_list(self) -> List[str]:
        """
        Serializes the environment as KEY=VALUE strings, trimming surrounding
        whitespace from keys and values.
        """
        return [f"{key.strip()}={value.strip()}" for key, value in self.environment.items()]

class RunResult(BaseModel):
    """
    Outcome of a successful run: exit status, captured streams and
    the warnings reported at container creation.
    """
    model_config = ConfigDict(frozen=True)

    container_id: str
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
    warnings: List[str] = []
