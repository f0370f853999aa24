"""Errors and warnings raised while building network attributes"""

from typing import Any


class PlusAttributesError(Exception):
    """Base class for all network attribute errors"""


class MalformedNetworkError(PlusAttributesError):
    """The downstream graph is not a rooted, outlet-terminated forest.

    Parameters
    ----------
    segment_id : Any
        The id of the segment where the problem was found
    message : str
        A description of the problem
    """

    def __init__(self, segment_id: Any, message: str) -> None:
        super().__init__(segment_id, message)
        self.segment_id = segment_id
        self.message = message

    def __str__(self) -> str:
        return f"Malformed network at segment {self.segment_id}: {self.message}"


class WorkerFailureError(PlusAttributesError):
    """A levelpath computation failed for one basin.

    Parameters
    ----------
    outlet_id : Any
        The outlet id of the basin that failed
    message : str
        The underlying error message
    """

    def __init__(self, outlet_id: Any, message: str) -> None:
        super().__init__(outlet_id, message)
        self.outlet_id = outlet_id
        self.message = message

    def __str__(self) -> str:
        return f"Levelpath computation failed for basin with outlet {self.outlet_id}: {self.message}"


class MissingColumnError(PlusAttributesError, KeyError):
    """A required input column is absent and cannot be derived"""

    def __init__(self, column: str) -> None:
        super().__init__(column)
        self.column = column

    def __str__(self) -> str:
        return f"Required column '{self.column}' is missing from the network"


class UndefinedPathLengthWarning(UserWarning):
    """Some segments could not be resolved to an outlet when computing path length"""
