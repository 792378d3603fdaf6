"""
Pydantic schemas for applications hosted by the agent service.

The same App model describes the descriptors returned by the service and the
app.yaml manifests read by `quartermaster create`. Manifests normally carry
only name, description, capacity, paths and domains; the service fills in the
id, versions and workers.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from quartermaster.core.exceptions import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "app.yaml"


class AppVersion(BaseModel):
    """An uploaded archive of an application."""
    version: str = ""
    filename: str = ""
    created: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class Worker(BaseModel):
    """A running container serving one version of an application."""
    container: str = ""
    host: str = ""
    port: int = 0
    version: str = ""

    model_config = ConfigDict(extra="ignore")


class App(BaseModel):
    """Application descriptor."""
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    name: str = ""
    description: str = ""
    capacity: int = 0
    paths: List[str] = Field(default_factory=list)
    domains: List[str] = Field(default_factory=list)
    versions: List[AppVersion] = Field(default_factory=list)
    workers: List[Worker] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def to_request(self) -> Dict[str, Any]:
        """Serialize for submission to the service, omitting unset fields."""
        return self.model_dump(mode="json", exclude_none=True, exclude={"versions", "workers"})


def load_manifest(app_dir: Union[str, Path]) -> App:
    """Read ``<app_dir>/app.yaml`` into an App.

    Raises:
        ManifestError: If the manifest is missing, not YAML, or has bad fields
    """
    path = Path(app_dir) / MANIFEST_NAME
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ManifestError(f"Unable to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a mapping, got {type(data).__name__}")

    try:
        app = App.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid application manifest {path}: {e}") from e

    logger.debug(f"Loaded manifest {path}: {app.name}")
    return app
