"""Abstract base class for all pipeline stage services."""

from abc import ABC, abstractmethod
from typing import Any, Optional
import logging

from config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class BaseStageService(ABC):
    """Base class for the match-and-decision stages.

    Subclasses must implement:
        - stage_name: identifier used in stage_registry
        - load(): prepare lookup tables or read external data
        - run(**kwargs): evaluate the stage and return a typed schema
    """

    stage_name: str = ""
    _loaded: bool = False

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.settings = config or default_settings

    @abstractmethod
    def load(self) -> None:
        """Prepare stage resources. Called once by stage_registry."""

    @abstractmethod
    def run(self, **kwargs: Any) -> Any:
        """Evaluate the stage. Returns a Pydantic schema defined per stage."""

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def ensure_loaded(self) -> None:
        """Load stage if not already loaded."""
        if not self._loaded:
            logger.info("Loading stage: %s", self.stage_name)
            self.load()
            self._loaded = True
            logger.info("Stage loaded: %s", self.stage_name)
