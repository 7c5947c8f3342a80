"""Default wiring of the mint fulfillment workflow.

Adapters come from their factories (``MINTER_ADAPTER``, ``STORAGE_ADAPTER``,
``METADATA_UPLOADER``) and the production resolver from
``PRODUCTION_RESOLVER``. The choice is made here, once, not per call.
"""

from collections.abc import Mapping

from minting.fulfillment.workflow import MintFulfillmentWorkflow
from minting.ledger.service import InventoryLedgerService
from minting.metadata import get_metadata_uploader, get_storage_preparer
from minting.metadata.preparer import TokenMetadataPreparer
from minting.mint_record.store import MintRecordStore
from minting.onchain import get_minter
from minting.production.loader import InspectionRepositoryLoader
from minting.production.resolver import resolver_from_env
from minting.token_design.store import TokenDesignStore

_current_workflow: MintFulfillmentWorkflow | None = None


def build_workflow(production_mapping: Mapping[str, str] | None = None) -> MintFulfillmentWorkflow:
    token_designs = TokenDesignStore()
    return MintFulfillmentWorkflow(
        mint_records=MintRecordStore(),
        production_resolver=resolver_from_env(production_mapping),
        inspection_loader=InspectionRepositoryLoader(),
        metadata_preparer=TokenMetadataPreparer(
            storage=get_storage_preparer(),
            uploader=get_metadata_uploader(),
            token_designs=token_designs,
        ),
        minter=get_minter(),
        token_designs=token_designs,
        ledger=InventoryLedgerService(),
    )


def get_workflow() -> MintFulfillmentWorkflow:
    global _current_workflow
    if _current_workflow is None:
        _current_workflow = build_workflow()
    return _current_workflow


def set_workflow(workflow: MintFulfillmentWorkflow) -> None:
    global _current_workflow
    _current_workflow = workflow


def reset_workflow() -> None:
    global _current_workflow
    _current_workflow = None
