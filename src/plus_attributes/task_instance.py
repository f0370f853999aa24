"""An in-memory stand-in for the Airflow TaskInstance used by local runs"""

from typing import Any


class TaskInstance:
    """Stores XCom values pushed by tasks.

    Keys are ``"<task_id>.<key>"``. Pulling without a key reads ``return_value``.
    """

    def __init__(self) -> None:
        self.xcom_store: dict[str, Any] = {}

    def xcom_push(self, key: str, value: Any) -> None:
        """Store a value under ``key``"""
        self.xcom_store[key] = value

    def xcom_pull(self, task_id: str, key: str = "return_value") -> Any:
        """Read the value a task pushed under ``key``, or None"""
        return self.xcom_store.get(f"{task_id}.{key}")
