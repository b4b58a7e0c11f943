"""
Dash front-end for the table view-state engine.

Provides create_dash_app(); every table's view lives in a per-table dcc.Store
and is projected by the callbacks in tableview.ui.callbacks.
"""

from .dash_app import create_dash_app

__all__ = ["create_dash_app"]
