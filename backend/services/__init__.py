from importlib import import_module

__all__ = [
    "AccountUpdateIngestor",
    "TokenLeaderboard",
    "AccountCallbackScheduler",
    "EventSourceMock",
    "EventName",
    "EventSourceError",
    "IngestorApp",
    "ExitSignal",
]

_LAZY_EXPORTS = {
    "AccountUpdateIngestor": ("services.update_ingestor", "AccountUpdateIngestor"),
    "TokenLeaderboard": ("services.token_leaders", "TokenLeaderboard"),
    "AccountCallbackScheduler": ("services.callback_scheduler", "AccountCallbackScheduler"),
    "EventSourceMock": ("services.event_source", "EventSourceMock"),
    "EventName": ("services.event_source", "EventName"),
    "EventSourceError": ("services.event_source", "EventSourceError"),
    "IngestorApp": ("services.ingestor_app", "IngestorApp"),
    "ExitSignal": ("services.ingestor_app", "ExitSignal"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module 'services' has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
