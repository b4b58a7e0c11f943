from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from tableview.config.model import GlobalConfig, TableConfig
from tableview.core.rows import RowSnapshot
from tableview.services.render_client import RenderClient
from tableview.services.table_controller import TableOptions


@dataclass
class AppConfig:
    config_root: Path
    global_config: GlobalConfig
    table_ids: List[str] = field(default_factory=list)
    tables: Dict[str, TableConfig] = field(default_factory=dict)
    options: Dict[str, TableOptions] = field(default_factory=dict)
    snapshots: Dict[str, RowSnapshot] = field(default_factory=dict)

    render_client: Optional[RenderClient] = None

    def options_for(self, table_id: str) -> TableOptions:
        return self.options[table_id]

    @property
    def address_bar_table(self) -> Optional[str]:
        """The single table whose view is mirrored into the page URL."""
        for table_id in self.table_ids:
            if self.options[table_id].sync_address_bar:
                return table_id
        return None

    def validate(self) -> None:
        """Ensure all required services are attached before the app starts."""
        if self.render_client is None:
            raise RuntimeError("AppConfig.render_client must be initialized.")
        missing = [t for t in self.table_ids if t not in self.options]
        if missing:
            raise RuntimeError(f"No table options for: {', '.join(missing)}")
