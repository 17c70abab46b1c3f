from .dispatcher import Dispatcher
from .outcomes import DispatchOutcome, DispatchResult

__all__ = ["Dispatcher", "DispatchOutcome", "DispatchResult"]
