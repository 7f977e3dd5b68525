"""Workflow orchestrator: one generation from settings to imported assets.

Preflight checks → credit pre-check → ``generate`` → credit ledger
update → persist images → asset import.  Generation always completes
(successfully or not) before anything is written.  Each step can also be
started as a tracked background job through the
:class:`~retroforge.jobs.JobOrchestrator`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from retroforge.client import RetroDiffusionClient
from retroforge.config import validate_settings
from retroforge.credits import CreditLedger
from retroforge.errors import InsufficientCreditsError, RetroForgeError
from retroforge.importer import AssetImporter, ImportedAsset
from retroforge.jobs import Job, JobKind, JobOrchestrator
from retroforge.logging import get_logger
from retroforge.models import GenerationResult, GenerationSettings
from retroforge.results import persist_result

logger = get_logger("workflow")


@dataclass
class GenerationOutcome:
    """Everything one successful generation produced."""

    result: GenerationResult
    paths: list[Path]
    imported: list[ImportedAsset] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class GenerationWorkflow:
    """Coordinates client, ledger, persistence and import for a session."""

    def __init__(
        self,
        client: RetroDiffusionClient,
        save_path: str | Path,
        *,
        ledger: CreditLedger | None = None,
        orchestrator: JobOrchestrator | None = None,
        importer: AssetImporter | None = None,
        precheck_credits: bool = True,
    ) -> None:
        self.client = client
        self.save_path = Path(save_path)
        self.ledger = ledger or CreditLedger()
        self.orchestrator = orchestrator or JobOrchestrator()
        self.importer = importer
        self.precheck_credits = precheck_credits
        self._results: list[GenerationResult] = []

    @property
    def results(self) -> list[GenerationResult]:
        """Results received during this session, oldest first."""
        return list(self._results)

    def clear_results(self) -> None:
        self._results.clear()

    async def check_credits(self) -> int:
        """Fetch the balance, update the ledger and return it."""
        credits = await self.ledger.refresh(self.client, raise_errors=True)
        assert credits is not None
        return credits

    async def _precheck_credits(self) -> None:
        try:
            credits = await self.check_credits()
        except RetroForgeError as exc:
            logger.error("Failed to check credits: %s", exc)
            return
        if credits <= 0:
            raise InsufficientCreditsError(
                "You don't have enough credits to generate images. "
                "Please add credits to your account.",
                credits=credits,
            )

    async def run(
        self,
        settings: GenerationSettings,
        *,
        now: datetime | None = None,
    ) -> GenerationOutcome:
        """Generate, save and import images for *settings*.

        Raises:
            ConfigError: Missing prompt or input file for the chosen mode.
            AuthError: Invalid key.
            InsufficientCreditsError: The pre-check reported no credits.
            AssetWriteError: Images could not be saved.
            RetroForgeError: Any other client failure.
        """
        warnings = validate_settings(settings)
        for warning in warnings:
            logger.warning(warning)
        self.client.validate_key()

        if self.precheck_credits:
            await self._precheck_credits()

        logger.info("Generating images... This may take up to 60 seconds.")
        result = await self.client.generate(settings)
        self._results.append(result)
        self.ledger.set(result.remaining_credits)

        paths = persist_result(result, settings, self.save_path, now=now)

        imported: list[ImportedAsset] = []
        if self.importer is not None and paths:
            imported = self.importer.import_assets(paths, settings.texture_import)

        logger.info(
            "Generated %d image(s). Cost: %d credit(s). Remaining: %d credit(s).",
            len(result.base64_images),
            result.credit_cost,
            result.remaining_credits,
        )
        return GenerationOutcome(
            result=result, paths=paths, imported=imported, warnings=warnings
        )

    # -- background jobs ----------------------------------------------------

    def submit_generate(self, settings: GenerationSettings) -> Job:
        """Start :meth:`run` as a tracked background job."""
        return self.orchestrator.submit(
            self.run(settings), name="generate", kind=JobKind.GENERATE
        )

    def submit_check_credits(self) -> Job:
        """Start :meth:`check_credits` as a tracked background job."""
        return self.orchestrator.submit(
            self.check_credits(), name="check_credits", kind=JobKind.CHECK_CREDITS
        )

    def is_busy(self) -> bool:
        return self.orchestrator.is_busy()

    async def close(self) -> None:
        """Wait for outstanding jobs and close the client."""
        await self.orchestrator.wait_idle()
        await self.client.close()
