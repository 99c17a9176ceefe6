from axis.backend.base import Backend, ConfirmGate, CuePlayer, HostWindow, IdFactory, Responder
from axis.backend.http import HttpBackend
from axis.backend.local import LocalBackend, echo_responder

__all__ = [
    "Backend",
    "ConfirmGate",
    "CuePlayer",
    "HostWindow",
    "HttpBackend",
    "IdFactory",
    "LocalBackend",
    "Responder",
    "echo_responder",
]
