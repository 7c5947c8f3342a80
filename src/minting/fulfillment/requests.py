"""Mint requests: command, handler and the request-then-fulfill entry point."""

from datetime import datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from minting.domain import minting
from minting.fulfillment.wiring import get_workflow
from minting.mint_record.mint_record import MintRecord
from minting.onchain.port import MintTransactionResult
from minting.production.inspection import InspectionBatch
from minting.token_design.token_design import TokenDesign

logger = structlog.get_logger(__name__)


@minting.command(part_of="MintRecord")
class RequestMint:
    """Submit the passed products of a production run for minting."""

    production_id = Identifier(required=True)
    token_design_id = Identifier(required=True)
    requested_by = String(required=True, max_length=100)
    scheduled_burn_date = String(max_length=10)


def _parse_burn_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError({"scheduled_burn_date": [f"Expected YYYY-MM-DD, got `{value}`"]}) from None


@minting.command_handler(part_of=MintRecord)
class RequestMintHandler:
    @handle(RequestMint)
    def request_mint(self, command):
        production_id = command.production_id.strip()
        burn_date = _parse_burn_date(command.scheduled_burn_date)

        records = current_domain.repository_for(MintRecord)
        try:
            records.get(production_id)
        except ObjectNotFoundError:
            pass
        else:
            raise ValidationError({"production_id": [f"Production `{production_id}` already has a mint request"]})

        batches = current_domain.repository_for(InspectionBatch)
        try:
            batch = batches.get(production_id)
        except ObjectNotFoundError as exc:
            raise ObjectNotFoundError(f"No inspection batch for production `{production_id}`") from exc

        passed = batch.passed_product_ids()
        if not passed:
            raise ValidationError({"passed_product_ids": [f"Production `{production_id}` has no passed products"]})

        token_design = current_domain.repository_for(TokenDesign).get(command.token_design_id)

        record = MintRecord.request(
            request_id=production_id,
            token_design_id=str(token_design.id),
            passed_product_ids=passed,
            requested_by=command.requested_by,
            brand_id=token_design.brand_id,
            scheduled_burn_date=burn_date,
        )
        records.add(record)

        batch.link_mint_request(production_id)
        batches.add(batch)

        logger.info("Mint requested", request_id=production_id, passed=len(passed))
        return production_id


def request_and_fulfill(
    production_id,
    token_design_id,
    requested_by,
    scheduled_burn_date=None,
) -> MintTransactionResult:
    """Create the mint request for ``production_id`` and fulfill it right away."""
    request_id = current_domain.process(
        RequestMint(
            production_id=production_id,
            token_design_id=token_design_id,
            requested_by=requested_by,
            scheduled_burn_date=scheduled_burn_date,
        ),
        asynchronous=False,
    )
    return get_workflow().fulfill(request_id, actor_id=requested_by)
