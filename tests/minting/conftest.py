import os

import pytest


@pytest.fixture(scope="session")
def _minting_domain(request):
    """Initialize the minting domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from minting.domain import minting

    minting.init()
    return minting


@pytest.fixture(scope="session", autouse=True)
def setup_db(_minting_domain):
    from minting.utils.db import drop_db, setup_db

    setup_db(_minting_domain)

    yield

    drop_db(_minting_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_minting_domain):
    """Push domain context before each test, cleanup after."""
    from minting.fulfillment.wiring import reset_workflow
    from minting.metadata import reset_metadata_adapters
    from minting.onchain import reset_minter

    ctx = _minting_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_workflow()
    reset_metadata_adapters()
    reset_minter()


@pytest.fixture
def minter():
    from minting.onchain import set_minter
    from minting.onchain.fake_adapter import FakeOnchainMinter

    fake = FakeOnchainMinter()
    set_minter(fake)
    return fake


@pytest.fixture
def storage():
    from minting.metadata import set_storage_preparer
    from minting.metadata.fake_adapter import FakeStoragePreparer

    fake = FakeStoragePreparer()
    set_storage_preparer(fake)
    return fake


@pytest.fixture
def uploader():
    from minting.metadata import set_metadata_uploader
    from minting.metadata.fake_adapter import FakeMetadataUploader

    fake = FakeMetadataUploader()
    set_metadata_uploader(fake)
    return fake


@pytest.fixture
def workflow(minter, storage, uploader):
    from minting.fulfillment.wiring import build_workflow

    return build_workflow()


@pytest.fixture
def seed_request():
    """Seed a token design, production, inspection batch and mint record.

    ``products`` is a list of ``(product_id, model_id)`` pairs; ``passed``
    picks which of them pass inspection (all of them by default). The mint
    record lists ``passed`` as its passed product ids.
    """
    from protean import current_domain
    from protean.exceptions import ObjectNotFoundError

    from minting.mint_record.mint_record import MintRecord
    from minting.mint_record.store import MintRecordStore
    from minting.production.inspection import InspectionBatch
    from minting.production.production import Production
    from minting.token_design.token_design import TokenDesign

    def _seed(
        request_id="R1",
        products=(("p1", "m1"), ("p2", "m1")),
        passed=None,
        token_design_id="td-1",
        product_blueprint_id="pb-1",
        requested_by="user-1",
    ):
        if passed is None:
            passed = [product_id for product_id, _ in products]

        designs = current_domain.repository_for(TokenDesign)
        try:
            designs.get(token_design_id)
        except ObjectNotFoundError:
            designs.add(
                TokenDesign.create(
                    brand_id="brand-1",
                    name="Aurora Jacket",
                    symbol="AUR",
                    created_by="designer-1",
                    description="Limited run jacket token",
                    token_design_id=token_design_id,
                )
            )

        current_domain.repository_for(Production).add(
            Production.create(
                product_blueprint_id=product_blueprint_id,
                quantity=len(products),
                brand_id="brand-1",
                created_by=requested_by,
                production_id=request_id,
            )
        )

        batch = InspectionBatch.create(request_id, list(products))
        for product_id, _ in products:
            batch.record_result(product_id, "Passed" if product_id in passed else "Failed", "inspector-1")
        current_domain.repository_for(InspectionBatch).add(batch)

        record = MintRecord.request(
            request_id=request_id,
            token_design_id=token_design_id,
            passed_product_ids=passed,
            requested_by=requested_by,
            brand_id="brand-1",
        )
        return MintRecordStore().create(record)

    return _seed
