from axis.runtime.boot import BootSequencer, render_boot
from axis.runtime.coordinator import Composer, KeyAction, RequestCoordinator
from axis.runtime.observer import EventInjector
from axis.runtime.shell import Shell
from axis.runtime.state import RuntimeState, new_session_id
from axis.runtime.store import SessionLogStore, filter_logs, list_session_ids
from axis.runtime.view import ViewModeController
from axis.runtime.vitals import VitalsPoller

__all__ = [
    "BootSequencer",
    "Composer",
    "EventInjector",
    "KeyAction",
    "RequestCoordinator",
    "RuntimeState",
    "SessionLogStore",
    "Shell",
    "ViewModeController",
    "VitalsPoller",
    "filter_logs",
    "list_session_ids",
    "new_session_id",
    "render_boot",
]
