"""
Configuration for the photobooth.

``BoothConfig`` holds everything the controller, camera adapters and the gRPC
server need. It can be built directly or loaded from YAML:

```yaml
photos_per_strip: 4
countdown_seconds: 3
interstitial_delay: 0.8
output_dir: "./output"
camera_backend: "webcam"     # webcam | picamera | mock
camera_index: 0
resolution: [1920, 1080]
default_filter: "vintage"
intensity: 1.0
grain: 0.5
```

```python
from photobooth.config import BoothConfig
config = BoothConfig.from_yaml("booth.yaml")
```
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass
class BoothConfig:
    """Runtime settings for a photobooth instance."""

    photos_per_strip: int = 4
    countdown_seconds: int = 3
    tick_interval: float = 1.0  # seconds between countdown ticks
    interstitial_delay: float = 0.8  # pause after each photo except the last
    output_dir: str = "./output"
    camera_backend: str = "webcam"
    camera_index: int = 0
    resolution: Tuple[int, int] = (1920, 1080)
    mirror: bool = True
    default_filter: str = "color"
    intensity: float = 1.0
    grain: float = 0.5
    upload_timeout: float = 10.0
    prefer_share: bool = False
    seed: Optional[int] = None
    grpc_host: str = "[::]"
    grpc_port: int = 50061

    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.photos_per_strip < 1:
            raise ValueError("photos_per_strip must be at least 1")
        if self.countdown_seconds < 0:
            raise ValueError("countdown_seconds cannot be negative")
        if not 0.0 <= self.intensity <= 1.0:
            raise ValueError(f"intensity must be within [0, 1], got {self.intensity}")
        if not 0.0 <= self.grain <= 1.0:
            raise ValueError(f"grain must be within [0, 1], got {self.grain}")
        self.resolution = tuple(int(v) for v in self.resolution)

    @classmethod
    def from_yaml(cls, path: str) -> "BoothConfig":
        """Load configuration from a YAML file.

        Unknown keys are preserved in ``extra``.

        Raises:
            FileNotFoundError: if the YAML file cannot be found.
            yaml.YAMLError: if the YAML file is invalid.
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoothConfig":
        known = {f.name for f in fields(cls) if f.name != "extra"}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def ensure_paths(self) -> None:
        """Create the output directory if needed."""
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)
