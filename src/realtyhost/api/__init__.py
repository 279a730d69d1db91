from realtyhost.api.app import CallableRequest, create_app, create_app_from_config

__all__ = [
    "CallableRequest",
    "create_app",
    "create_app_from_config",
]
