"""Path management utilities for genomicdao-deployments library."""

from pathlib import Path
from typing import Optional, Union


def get_default_artifacts_dir() -> Path:
    """
    Get default hardhat artifacts directory.

    Returns:
        Path to ./artifacts
    """
    return Path.cwd() / "artifacts"


def get_default_record_dir() -> Path:
    """
    Get default directory for deployment records.

    Returns:
        Path to ./.genomicdao-deployments
    """
    return Path.cwd() / ".genomicdao-deployments"


def get_record_path(network: str, record_root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the deployment record file for a network.

    Args:
        network: Network name, e.g. "lifeNetwork"
        record_root: Custom record directory (defaults to ./.genomicdao-deployments)

    Returns:
        Path to <record_root>/<network>.json
    """
    if record_root is None:
        record_root = get_default_record_dir()
    else:
        record_root = Path(record_root).absolute()

    return record_root / f"{network}.json"
