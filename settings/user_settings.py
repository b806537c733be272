"""User settings read from the environment."""
import logging
import os
from enum import Enum
from typing import Mapping, Optional

from processor.models import EventKind

logger = logging.getLogger(__name__)


class DisplayFormat(str, Enum):
    """How the next prayer is labelled."""
    LONG = 'Long'
    SHORT = 'Short'
    ICON_ONLY = 'IconOnly'

    @property
    def description(self) -> str:
        return {
            DisplayFormat.LONG: 'Long (Maghrib)',
            DisplayFormat.SHORT: 'Short (M)',
            DisplayFormat.ICON_ONLY: 'Icon only',
        }[self]

    def label_for(self, kind: EventKind) -> str:
        if self is DisplayFormat.LONG:
            return kind.value
        if self is DisplayFormat.SHORT:
            return kind.short_name
        return ''


class UserSettings:
    """
    Settings collaborator for the scheduler.

    Values are looked up on every access, so a change is seen by the next
    refresh cycle.
    """

    ADDRESS_VAR = 'SALAT_ADDRESS'
    FORMAT_VAR = 'SALAT_FORMAT'

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            environ: Mapping to read from (default: os.environ)
        """
        self._environ = environ if environ is not None else os.environ

    @property
    def address(self) -> str:
        return self._environ.get(self.ADDRESS_VAR, '').strip()

    @property
    def format(self) -> DisplayFormat:
        raw = self._environ.get(self.FORMAT_VAR, DisplayFormat.LONG.value)
        try:
            return DisplayFormat(raw)
        except ValueError:
            logger.warning(f"Unknown display format '{raw}', using Long")
            return DisplayFormat.LONG
