"""Render palettes for tables and status labels."""

from __future__ import annotations

from enum import Enum
from typing import Dict

from rich.console import Console
from rich.theme import Theme as RichTheme

_PALETTES: Dict[str, Dict[str, str]] = {
    "light": {
        "title": "bold blue",
        "header": "bold black",
        "muted": "grey50",
        "healthy": "green4",
        "monitor": "dark_orange3",
        "at_risk": "bold red3",
        "success": "green4",
        "error": "bold red3",
    },
    "dark": {
        "title": "bold bright_cyan",
        "header": "bold bright_white",
        "muted": "grey62",
        "healthy": "bright_green",
        "monitor": "yellow",
        "at_risk": "bold bright_red",
        "success": "bright_green",
        "error": "bold bright_red",
    },
}

_LABEL_STYLES = {"Healthy": "healthy", "Monitor": "monitor", "At Risk": "at_risk"}


class Theme(str, Enum):
    """Explicit display theme threaded through every render call."""

    LIGHT = "light"
    DARK = "dark"

    @property
    def styles(self) -> Dict[str, str]:
        return dict(_PALETTES[self.value])

    def rich_theme(self) -> RichTheme:
        return RichTheme(_PALETTES[self.value])

    def console(self, **kwargs) -> Console:
        """A rich console using this theme's named styles."""
        return Console(theme=self.rich_theme(), **kwargs)

    @staticmethod
    def label_style(label: str) -> str:
        """Named style for a health label, ``muted`` when unknown."""
        return _LABEL_STYLES.get(label, "muted")
