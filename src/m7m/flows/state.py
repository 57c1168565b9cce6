"""Per-run mutable execution state."""

from __future__ import annotations

from dataclasses import dataclass, field

from m7m.errors import MissingInputError


@dataclass(slots=True)
class ExecutionState:
    """Variables plus the value produced by the most recent producing step.

    One instance lives for exactly one run of a flow (root steps and the
    top-level fallback) and is only touched by the thread running it.
    """

    vars: dict[str, str] = field(default_factory=dict)
    last_output: str | None = None

    def set_output(self, value: str, output_var: str | None = None) -> None:
        """Record ``value`` as the last output and, if named, as a variable."""

        if output_var is not None:
            self.vars[output_var] = value
        self.last_output = value

    def get_input(self, input_var: str | None = None) -> str:
        """Resolve a step input.

        With a name, the variable must exist. Without one, the last output is
        used.

        Raises:
            MissingInputError: If the named variable or the last output is unset.
        """
        if input_var is not None:
            try:
                return self.vars[input_var]
            except KeyError:
                raise MissingInputError(f"invalid input variable name {input_var}") from None
        if self.last_output is None:
            raise MissingInputError("no input variable specified and no previous output to use")
        return self.last_output

    def snapshot(self) -> dict[str, object]:
        return {"vars": dict(self.vars), "last_output": self.last_output}
