"""
Configuration models for dialog defaults.

These models handle the qtprompt.json structure with migration support.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


# Current config version - increment when schema changes
CONFIG_VERSION = 1


@dataclass
class DefaultsConfig:
    """
    Dialog-level styling defaults.

    Any attribute a dialog specification leaves unset is taken from here.
    """
    font_family: Optional[str] = None
    font_size: Optional[int] = None
    font_color: Optional[str] = None
    background_color: Optional[str] = None
    accent_color: Optional[str] = None
    min_width: int = 320
    owner_dim_opacity: float = 0.5
    _version: int = CONFIG_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_version": self._version,
            "font": {
                "family": self.font_family,
                "size": self.font_size,
                "color": self.font_color,
            },
            "colors": {
                "background": self.background_color,
                "accent": self.accent_color,
            },
            "min_width": self.min_width,
            "owner_dim_opacity": self.owner_dim_opacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DefaultsConfig":
        font = data.get("font", {}) or {}
        colors = data.get("colors", {}) or {}
        opacity = float(data.get("owner_dim_opacity", 0.5))
        return cls(
            font_family=font.get("family"),
            font_size=font.get("size"),
            font_color=font.get("color"),
            background_color=colors.get("background"),
            accent_color=colors.get("accent"),
            min_width=int(data.get("min_width", 320)),
            owner_dim_opacity=min(max(opacity, 0.0), 1.0),
            _version=data.get("_version", CONFIG_VERSION),
        )
