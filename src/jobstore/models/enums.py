"""String enums for binary types and derived job states."""

from enum import StrEnum


class BinaryType(StrEnum):
    JAR = "Jar"
    EGG = "Egg"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @classmethod
    def from_string(cls, name: str) -> "BinaryType":
        """Parse a stored binary type name (e.g. ``"Jar"``)."""
        for member in cls:
            if member.value == name:
                return member
        raise ValueError(f"Unknown binary type: {name!r}")


_EXTENSIONS = {
    BinaryType.JAR: "jar",
    BinaryType.EGG: "egg",
}

_MEDIA_TYPES = {
    BinaryType.JAR: "application/java-archive",
    BinaryType.EGG: "application/python-egg",
}


class JobStatus(StrEnum):
    RUNNING = "RUNNING"
    ERROR = "ERROR"
    FINISHED = "FINISHED"
