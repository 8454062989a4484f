import platform
from importlib.metadata import PackageNotFoundError, version


def _package_version() -> str:
    try:
        return version("kvplatform")
    except PackageNotFoundError:
        return "0.0.0"


def user_agent_value() -> str:
    return (
        f"KvPlatformClient/{_package_version()} "
        f"({platform.system()}; Python/{platform.python_version()})"
    )
