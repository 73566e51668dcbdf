# clinic_core/common/events.py
from collections import defaultdict
from typing import Any, Callable, Dict, List

Handler = Callable[[Dict[str, Any]], None]

_registry: Dict[str, List[Handler]] = defaultdict(list)


def subscribe(event_name: str):
    """
    Decorator to register an event handler.
    Usage:
        @subscribe("lab_request.completed")
        def handler(payload): ...
    """
    def _decorator(fn: Handler) -> Handler:
        # ready() may run more than once under test runners
        if fn not in _registry[event_name]:
            _registry[event_name].append(fn)
        return fn
    return _decorator


def handlers_for(event_name: str) -> List[Handler]:
    return list(_registry.get(event_name, []))
