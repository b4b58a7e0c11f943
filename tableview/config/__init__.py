"""
Config package for tableview.

Responsible for:
- config models (GlobalConfig, TableConfig)
- the multi-file loader (load_global_config / load_tables)
"""

from .loader import load_global_config, load_tables
from .model import GlobalConfig, TableConfig
