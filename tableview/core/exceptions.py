

class TableViewError(Exception):
    """Base exception for all tableview errors"""
    pass

class ConfigError(TableViewError):
    """Invalid or inconsistent global.json or table config"""
    pass

class RemoteSyncError(TableViewError):
    """
    The remote render service could not be reached or answered with an
    error status
    """
    pass

class MalformedResponseError(RemoteSyncError):
    """Targeted patch document is missing required fragments"""
    pass

class ActionError(TableViewError):
    """Bulk or row action POST failed"""
    pass
