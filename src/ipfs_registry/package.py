"""Package identifiers."""

from dataclasses import dataclass

_FORBIDDEN_CHARS = ("/", "\\", "\0")


@dataclass(frozen=True)
class PackageId:
    """Immutable name + version key for one package artifact.

    Attributes:
        name: Package name
        version: Package version string

    Examples:
        >>> pkg = PackageId("serde", "1.0.0")
        >>> pkg.filename
        'serde-1.0.0.crate'
        >>> str(pkg)
        'serde v1.0.0'
    """

    name: str
    version: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Package name cannot be empty")
        if not self.version:
            raise ValueError(f"Package version cannot be empty for '{self.name}'")
        for field_name, value in (("name", self.name), ("version", self.version)):
            if value in (".", "..") or any(c in value for c in _FORBIDDEN_CHARS):
                raise ValueError(
                    f"Package {field_name} '{value}' is not a valid path component"
                )

    @property
    def filename(self) -> str:
        """Canonical artifact filename."""
        return f"{self.name}-{self.version}.crate"

    @classmethod
    def parse(cls, text: str) -> "PackageId":
        """Parse a ``name@version`` string.

        Args:
            text: String of the form 'name@version'

        Returns:
            PackageId instance

        Raises:
            ValueError: If the string is not of the form 'name@version'
        """
        name, sep, version = text.partition("@")
        if not sep:
            raise ValueError(f"Expected 'name@version', got '{text}'")
        return cls(name.strip(), version.strip())

    def __str__(self) -> str:
        return f"{self.name} v{self.version}"
