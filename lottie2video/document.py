"""Animation document model

An AnimationDocument wraps a parsed Lottie (Bodymovin) JSON payload. Only the
fields needed to size the viewport are read statically; the playable frame
count always comes from the loaded rendering context.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config import DEFAULT_HEIGHT, DEFAULT_WIDTH
from .exceptions import LoadError


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value) if value > 0 else None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass(frozen=True)
class AnimationDocument:
    data: Dict[str, Any]
    name: str = "animation"

    @classmethod
    def from_dict(cls, data: Any, name: str = "animation") -> "AnimationDocument":
        if not isinstance(data, dict):
            raise LoadError(
                f"Animation document must be a JSON object, got {type(data).__name__}",
                module="document"
            )
        return cls(data=data, name=name)

    @classmethod
    def from_json(cls, text: Union[str, bytes], name: str = "animation") -> "AnimationDocument":
        try:
            data = json.loads(text)
        except (ValueError, UnicodeDecodeError) as e:
            raise LoadError(f"Animation document is not valid JSON: {e}", module="document") from e
        return cls.from_dict(data, name=name)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AnimationDocument":
        path = Path(path)
        try:
            text = path.read_bytes()
        except OSError as e:
            raise LoadError(f"Cannot read animation file {path}: {e}", module="document") from e
        return cls.from_json(text, name=path.stem)

    @property
    def declared_width(self) -> Optional[int]:
        return _positive_int(self.data.get("w"))

    @property
    def declared_height(self) -> Optional[int]:
        return _positive_int(self.data.get("h"))

    @property
    def declared_frame_rate(self) -> Optional[float]:
        fr = self.data.get("fr")
        if isinstance(fr, bool) or not isinstance(fr, (int, float)) or fr <= 0:
            return None
        return float(fr)

    @property
    def declared_in_point(self) -> Optional[float]:
        return _number(self.data.get("ip"))

    @property
    def declared_out_point(self) -> Optional[float]:
        return _number(self.data.get("op"))

    @property
    def declared_frame_count(self) -> Optional[int]:
        """Frame count implied by ``op - ip``. Informational only; nested
        precomps can make the playable length differ."""
        ip, op = self.declared_in_point, self.declared_out_point
        if ip is None or op is None or op <= ip:
            return None
        return int(op - ip)

    def viewport(self, default_width: int = DEFAULT_WIDTH,
                 default_height: int = DEFAULT_HEIGHT) -> tuple:
        """Return (width, height), using the defaults for an absent explicit size."""
        return (self.declared_width or default_width,
                self.declared_height or default_height)
