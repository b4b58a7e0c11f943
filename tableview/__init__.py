"""
Top-level package for the table view-state engine.

Most code should import from submodules such as:
    tableview.core
    tableview.dom
    tableview.services
    tableview.ui
"""

__all__: list[str] = []
