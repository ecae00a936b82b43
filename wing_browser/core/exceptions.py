class WingBrowserError(Exception):
    """Base exception for all wing_browser errors"""
    pass

class ConfigError(WingBrowserError):
    """Invalid or inconsistent global.json"""
    pass

class DatasetSchemaError(WingBrowserError):
    """
    Input table doesn't match what the loaders expect:
    missing columns, unusable landmark rows, etc
    """
    pass
