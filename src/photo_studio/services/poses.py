"""Pose reference library."""

import random
from dataclasses import dataclass, field
from pathlib import Path

from photo_studio.domain.errors import InvalidRequestError
from photo_studio.services.files import list_images


@dataclass
class PoseLibrary:
    """Directory of pose reference images, one picked at random per call."""

    directory: Path
    rng: random.Random = field(default_factory=random.Random)

    def poses(self) -> list[Path]:
        return list_images(self.directory)

    def random_pose(self) -> Path:
        poses = self.poses()
        if not poses:
            raise InvalidRequestError(f"No pose images found in {self.directory}")
        return self.rng.choice(poses)
