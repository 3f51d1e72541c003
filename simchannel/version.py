"""Client version/build metadata presented in the upgrade handshake."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import metadata

DISTRIBUTION_NAME = "simchannel"
BUILD_ID_ENV = "SIMCHANNEL_BUILD_ID"


@dataclass(frozen=True)
class VersionInfo:
    version: str
    build_id: str


def read_version() -> VersionInfo:
    """Read the current version and build identifier.

    Nothing is cached: the transport calls this once per connection attempt,
    so a build swapped in mid retry loop shows up in the next handshake.
    """

    try:
        version = metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        from simchannel import __version__

        version = __version__
    build_id = os.getenv(BUILD_ID_ENV) or "unknown"
    return VersionInfo(version=version, build_id=build_id)


def user_agent(client_name: str, info: VersionInfo) -> str:
    return f"{client_name}/{info.version} ({info.build_id})"
