"""
Flow storage backed by per-node files.

Flows are kept as one .flows.js file per node in the node directory. The
whole-flows JSON file is still written on every save (unless disabled) and
acts as a backup and as the fallback when the node directory is empty.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.settings import StorageSettings
from ..core.exceptions import ConfigError
from .directory_sync import DirectorySynchronizer, SyncReport
from .file_util import read_file, write_file

logger = logging.getLogger(__name__)


def serialize_json(data: Any, pretty: bool) -> str:
    """Serialize flows or credentials for the JSON files."""
    if pretty:
        return json.dumps(data, indent=4, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class FlowStorage:
    """
    Storage for flows and credentials.

    Example:
        >>> storage = FlowStorage(load_settings())
        >>> storage.init()
        >>> flows = storage.get_flows()
        >>> storage.save_flows(flows)
    """

    def __init__(self, settings: StorageSettings):
        """
        Initialize flow storage.

        Args:
            settings: Resolved storage settings
        """
        if not settings.is_resolved:
            raise ConfigError("Storage settings must be resolved before use")
        self.settings = settings
        self.synchronizer = DirectorySynchronizer(settings.flows_dir_path)
        self._initialized = False

    def init(self) -> None:
        """
        Prepare storage for use.

        Raises:
            ConfigError: If projects mode is enabled
        """
        if self.settings.projects_enabled:
            raise ConfigError("flowstore does not support projects")

        if not self.settings.read_only:
            self.settings.flows_dir_path.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"Flows file: {self.settings.flows_path}",
            extra={"directory": str(self.settings.flows_dir_path)},
        )
        self._initialized = True

    def _require_init(self) -> None:
        if not self._initialized:
            self.init()

    def get_flows(self) -> List[Dict[str, Any]]:
        """
        Load flows.

        Node files are read first. If they yield nothing, the flows file
        (or its backup) is used instead.

        Returns:
            Ordered list of nodes, empty if nothing is stored
        """
        self._require_init()

        flows = self.synchronizer.read(None)
        if flows is not None:
            return flows

        flows = read_file(
            self.settings.flows_path,
            self.settings.flows_backup_path,
            None,
            "flow",
        )
        if flows is None:
            return []
        return flows

    def save_flows(self, flows: Sequence[Mapping[str, Any]]) -> Optional[SyncReport]:
        """
        Save flows.

        The flows file is written first, so a failure while writing node
        files still leaves a complete copy of the flows.

        Returns:
            SyncReport for the node directory, or None if read-only

        Raises:
            ValidationError: If a node lacks a usable 'id' or 'type'
            StorageError: If a file cannot be written
        """
        if self.settings.read_only:
            return None
        self._require_init()

        if self.settings.flow_file_enabled:
            write_file(
                self.settings.flows_path,
                serialize_json(list(flows), self.settings.flow_file_pretty),
                self.settings.flows_backup_path,
            )

        return self.synchronizer.write(flows)

    def get_credentials(self) -> Dict[str, Any]:
        """Load credentials, or {} if none are stored."""
        return read_file(
            self.settings.credentials_path,
            self.settings.credentials_backup_path,
            {},
            "credentials",
        )

    def save_credentials(self, credentials: Mapping[str, Any]) -> None:
        """Save credentials, keeping a backup of the previous file."""
        if self.settings.read_only:
            return
        write_file(
            self.settings.credentials_path,
            serialize_json(dict(credentials), self.settings.flow_file_pretty),
            self.settings.credentials_backup_path,
        )
