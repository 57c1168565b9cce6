"""Immutable flow definition model.

A flow is loaded once and then shared read-only by every run it triggers, so
every model here is frozen. Steps form a tree: ``CompareVar`` embeds its two
arms and every ``FailSpec`` embeds a fallback list. The tree is built at load
time and never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from m7m.flows.durations import MAX_DURATION_SECONDS


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


class FailSpec(_Frozen):
    """Per-step retry budget, retry delay and fallback steps."""

    retries: int = Field(default=0, ge=0)
    retry_interval: float = Field(
        default=1.0, ge=0, le=MAX_DURATION_SECONDS, description="Seconds between attempts"
    )
    fallback: tuple[Step, ...] = ()


class AbortFlow(_Frozen):
    kind: Literal["abort_flow"] = "abort_flow"


class DebugState(_Frozen):
    kind: Literal["debug_state"] = "debug_state"


class Sleep(_Frozen):
    kind: Literal["sleep"] = "sleep"
    duration: float = Field(ge=0, le=MAX_DURATION_SECONDS, description="Seconds")


class Notify(_Frozen):
    kind: Literal["notify"] = "notify"
    notifier: str
    message: str
    fail: FailSpec = Field(default_factory=FailSpec)


class GetUrl(_Frozen):
    kind: Literal["get_url"] = "get_url"
    url: str
    output_var: str | None = None
    fail: FailSpec = Field(default_factory=FailSpec)


class PostUrl(_Frozen):
    kind: Literal["post_url"] = "post_url"
    url: str
    body: str
    headers: dict[str, str] = Field(default_factory=dict)
    fail: FailSpec = Field(default_factory=FailSpec)


class ExtractCapture(_Frozen):
    """Apply ``pattern`` to the input and keep its first capture group."""

    kind: Literal["extract_capture"] = "extract_capture"
    input_var: str | None = None
    output_var: str | None = None
    pattern: str
    fail: FailSpec = Field(default_factory=FailSpec)


class CompareVar(_Frozen):
    kind: Literal["compare_var"] = "compare_var"
    input_var: str | None = None
    compare_with: str
    compare_for: str = "equality"
    if_true: tuple[Step, ...] = ()
    if_false: tuple[Step, ...] = ()


class ReadFile(_Frozen):
    kind: Literal["read_file"] = "read_file"
    path: str
    output_var: str | None = None
    fail: FailSpec = Field(default_factory=FailSpec)


class AppendFile(_Frozen):
    kind: Literal["append_file"] = "append_file"
    path: str
    input_var: str | None = None
    fail: FailSpec = Field(default_factory=FailSpec)


class SetVariable(_Frozen):
    kind: Literal["set_variable"] = "set_variable"
    output_var: str | None = None
    value: str


Step = Annotated[
    AbortFlow
    | DebugState
    | Sleep
    | Notify
    | GetUrl
    | PostUrl
    | ExtractCapture
    | CompareVar
    | ReadFile
    | AppendFile
    | SetVariable,
    Field(discriminator="kind"),
]


def child_step_lists(step: Step) -> list[tuple[Step, ...]]:
    """Return the nested step lists embedded in ``step`` (branches, fallback)."""

    if isinstance(step, CompareVar):
        return [step.if_true, step.if_false]
    fail = getattr(step, "fail", None)
    if isinstance(fail, FailSpec):
        return [fail.fallback]
    return []


def iter_steps(steps: Iterable[Step]) -> Iterator[Step]:
    """Walk a step tree depth-first, yielding every step."""

    for step in steps:
        yield step
        for child in child_step_lists(step):
            yield from iter_steps(child)


# ---------------------------------------------------------------------------
# Notifiers
# ---------------------------------------------------------------------------


class PrintNotifierConfig(_Frozen):
    type: Literal["print"] = "print"
    name: str


class MemoryNotifierConfig(_Frozen):
    type: Literal["memory"] = "memory"
    name: str


class TelegramNotifierConfig(_Frozen):
    type: Literal["telegram"] = "telegram"
    name: str
    token: str | None = None
    chat_id: str | None = None

    @field_validator("chat_id", mode="before")
    @classmethod
    def _chat_id_as_text(cls, value: object) -> object:
        # Chat ids are numeric in YAML more often than not.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ChainNotifierConfig(_Frozen):
    type: Literal["chain"] = "chain"
    name: str
    targets: tuple[str, ...] = Field(min_length=1)


NotifierConfig = Annotated[
    PrintNotifierConfig | MemoryNotifierConfig | TelegramNotifierConfig | ChainNotifierConfig,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Triggers and flows
# ---------------------------------------------------------------------------


class OnceTriggerSpec(_Frozen):
    type: Literal["once"] = "once"


class IntervalTriggerSpec(_Frozen):
    type: Literal["interval"] = "interval"
    interval: float = Field(
        default=1.0, gt=0, le=MAX_DURATION_SECONDS, description="Seconds between runs"
    )


TriggerSpec = Annotated[
    OnceTriggerSpec | IntervalTriggerSpec,
    Field(discriminator="type"),
]


class FlowDefinition(_Frozen):
    """One flow: trigger, notifiers, root steps and top-level fallback."""

    name: str | None = None
    trigger: TriggerSpec | None = None
    notifiers: tuple[NotifierConfig, ...] = ()
    steps: tuple[Step, ...]
    upon_failure: tuple[Step, ...] = ()

    @property
    def label(self) -> str:
        """Name used to correlate log lines."""

        return self.name or "<unnamed>"

    @model_validator(mode="after")
    def _check_notifier_references(self) -> FlowDefinition:
        by_name: dict[str, NotifierConfig] = {}
        for config in self.notifiers:
            if config.name in by_name:
                raise ValueError(f"duplicate notifier name: {config.name}")
            by_name[config.name] = config

        for config in self.notifiers:
            if not isinstance(config, ChainNotifierConfig):
                continue
            for target in config.targets:
                member = by_name.get(target)
                if member is None:
                    raise ValueError(
                        f"chain notifier {config.name} references unknown notifier {target}"
                    )
                if isinstance(member, ChainNotifierConfig):
                    raise ValueError(
                        f"chain notifier {config.name} cannot contain chain notifier {target}"
                    )

        for step in iter_steps((*self.steps, *self.upon_failure)):
            if isinstance(step, Notify) and step.notifier not in by_name:
                raise ValueError(f"notify step references unknown notifier {step.notifier}")
        return self


for _model in (
    FailSpec,
    Notify,
    GetUrl,
    PostUrl,
    ExtractCapture,
    CompareVar,
    ReadFile,
    AppendFile,
    FlowDefinition,
):
    _model.model_rebuild()
del _model
