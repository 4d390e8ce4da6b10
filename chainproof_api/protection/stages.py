"""Stage descriptors and per-stage results for the protection pipeline."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from chainproof_api.distributed.ipfs import PublishReceipt
from chainproof_api.ledger.client import AnchorReceipt
from chainproof_api.protection.schema import AssetMetadata, ProtectionOptions, Subject
from chainproof_api.utils.metrics import optional_stage_failures

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
FAILED = "failed"
SKIPPED = "skipped"


@dataclass
class StageOutcome:
    """Result of one stage: a value on success, the error on failure."""

    name: str
    state: str
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state == SUCCEEDED


@dataclass
class PipelineContext:
    """Everything produced so far by one protection request."""

    data: bytes
    metadata: AssetMetadata
    options: ProtectionOptions
    subject: Optional[Subject] = None
    content_hash: Optional[str] = None
    object_key: Optional[str] = None
    object_path: Optional[str] = None
    public_url: Optional[str] = None
    distributed: Optional[PublishReceipt] = None
    anchor: Optional[AnchorReceipt] = None
    outcomes: Dict[str, StageOutcome] = field(default_factory=dict)

    def succeeded(self, stage_name: str) -> bool:
        outcome = self.outcomes.get(stage_name)
        return outcome is not None and outcome.ok

    def stage_states(self) -> Dict[str, str]:
        return {name: outcome.state for name, outcome in self.outcomes.items()}


def always(ctx: PipelineContext) -> bool:
    return True


@dataclass
class Stage:
    """One pipeline step.

    Mandatory stages propagate their errors. Optional stages record the
    failure and let the pipeline continue.
    """

    name: str
    run: Callable[[PipelineContext], Any]
    mandatory: bool = True
    enabled: Callable[[PipelineContext], bool] = always


def run_stages(stages: List[Stage], ctx: PipelineContext) -> PipelineContext:
    """Run `stages` in order, folding each result into `ctx.outcomes`."""
    for stage in stages:
        if not stage.enabled(ctx):
            logger.debug(f"Skipping stage {stage.name}", extra={"stage": stage.name})
            ctx.outcomes[stage.name] = StageOutcome(stage.name, SKIPPED)
            continue

        logger.info(f"Running stage {stage.name}", extra={"stage": stage.name})
        try:
            value = stage.run(ctx)
        except Exception as e:
            ctx.outcomes[stage.name] = StageOutcome(stage.name, FAILED, error=e)
            if stage.mandatory:
                logger.error(
                    f"Stage {stage.name} failed: {e}",
                    extra={"stage": stage.name, "error": type(e).__name__},
                )
                raise
            logger.warning(
                f"Optional stage {stage.name} failed, continuing: {e}",
                extra={"stage": stage.name, "error": type(e).__name__},
            )
            optional_stage_failures.labels(stage=stage.name).inc()
            continue

        ctx.outcomes[stage.name] = StageOutcome(stage.name, SUCCEEDED, value=value)
    return ctx
