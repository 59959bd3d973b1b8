from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Paths:
    package_dir: Path
    data_dir: Path
    schema_dir: Path
    userdata_dir: Path


def get_paths(userdata_dir: Path | None = None) -> Paths:
    # src/citadels/paths.py -> the card data ships inside the package
    package_dir = Path(__file__).resolve().parent
    data_dir = package_dir / "data"
    schema_dir = data_dir / "schemas"
    return Paths(
        package_dir=package_dir,
        data_dir=data_dir,
        schema_dir=schema_dir,
        userdata_dir=userdata_dir if userdata_dir is not None else Path.cwd() / "userdata",
    )
