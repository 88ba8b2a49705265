from pathlib import Path
from typing import Dict
from typing import Optional

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from assetbridge.errors import ConfigurationError

MANIFEST_FILENAME = "manifest.json"


class ManifestEntry(BaseModel):
    """A single compiled file recorded in the manifest.

    Only the ``assets`` mapping is required to serve a manifest, so the
    metadata fields may be missing in hand-written or older manifests.
    """

    logical_path: Optional[str] = None
    mtime: Optional[str] = None
    size: Optional[int] = None
    digest: Optional[str] = None


class Manifest(BaseModel):
    """Mapping of logical asset names to their digested output names."""

    assets: Dict[str, str]
    files: Dict[str, ManifestEntry] = Field(default_factory=dict)

    def lookup(self, logical_path: str) -> Optional[str]:
        return self.assets.get(logical_path)

    def has_file(self, digest_path: str) -> bool:
        return digest_path in self.files or digest_path in self.assets.values()

    @classmethod
    def load(cls, manifest_file: Path) -> "Manifest":
        """Read and validate a manifest file.

        Raises:
            ConfigurationError: If the file is missing, is not valid JSON or
                has no ``assets`` mapping.
        """
        if not manifest_file.is_file():
            raise ConfigurationError(
                f"Running in production but manifest file [{manifest_file}] not found"
            )
        try:
            return cls.model_validate_json(manifest_file.read_bytes())
        except ValidationError as e:
            raise ConfigurationError(
                f"Running in production but manifest file [{manifest_file}] "
                f"is not a valid manifest file: {e}"
            ) from e

    def save(self, manifest_file: Path) -> None:
        manifest_file.parent.mkdir(parents=True, exist_ok=True)
        manifest_file.write_text(self.model_dump_json(indent=2), encoding="utf-8")
