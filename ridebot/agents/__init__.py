"""Query interpretation for the ride chat bot."""

from .interpreter import QueryInterpreter, get_query_interpreter
from .relaxation import RELAXATION_STRATEGIES, RelaxationStrategy

__all__ = [
    "QueryInterpreter",
    "RELAXATION_STRATEGIES",
    "RelaxationStrategy",
    "get_query_interpreter",
]
