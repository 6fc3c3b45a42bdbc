from __future__ import annotations


class LoadFailure(RuntimeError):
    """A source dataset could not be fetched or parsed; initialization aborted."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"failed to load {source}: {message}")
        self.source = source


class InvalidControlInput(ValueError):
    """A view transition received a value outside its valid domain."""

    def __init__(self, control: str, value: object, allowed: str) -> None:
        super().__init__(f"invalid {control}: {value!r} (expected {allowed})")
        self.control = control
        self.value = value
