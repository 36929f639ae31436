import re
from typing import NamedTuple, Optional


class VersionInfo(NamedTuple):
    major: int
    minor: int
    micro: int
    releaselevel: str
    serial: str


class Version:
    """A Syndesis version.

    Two versions are the same only when their strings are identical,
    ``1.5`` and ``1.5.0`` are different versions. ``info`` is informational
    and is ``None`` for strings that do not look like ``major.minor.micro``.
    """

    _version: str

    info: Optional[VersionInfo]

    def __init__(self, version: str, version_info: VersionInfo = None) -> None:
        if not version:
            raise ValueError("Version cannot be empty")
        self._version = version
        if version_info is None:
            version_info = Version.parse_info(self._version)
        self.info = version_info

    @classmethod
    def parse_info(cls, version: str) -> Optional[VersionInfo]:
        """Parse a version string."""
        _match = re.match(r"(\d+)\.(\d+)\.(\d+)(.+)?", version)
        if _match is None:
            return None
        _temp = _match.groups()
        return VersionInfo(
            int(_temp[0]), int(_temp[1]), int(_temp[2]), _temp[3] or "", ""
        )

    @classmethod
    def from_str(cls, version: str) -> "Version":
        return Version(version.strip())

    def __eq__(self, other) -> bool:
        if isinstance(other, Version):
            return self._version == other._version
        if isinstance(other, str):
            return self._version == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._version)

    def __str__(self) -> str:
        return self._version

    def __repr__(self) -> str:
        return f"Version<{self._version}>"
