"""Application tests for MintFulfillmentWorkflow.fulfill()."""

import threading

import pytest
from minting.errors import ExternalServiceError, InventoryConsistencyError
from minting.fulfillment.workflow import MintFulfillmentWorkflow
from minting.ledger.ledger import InventoryLedger
from minting.ledger.service import InventoryLedgerService
from minting.metadata.fake_adapter import FakeMetadataUploader
from minting.mint_record.mint_record import MintRecord
from minting.mint_record.store import MintRecordStore
from minting.production.inspection import InspectionBatch
from minting.production.resolver import MappingProductionResolver
from minting.token_design.store import TokenDesignPatch, TokenDesignStore
from protean import current_domain
from protean.exceptions import ConfigurationError, ObjectNotFoundError, ValidationError


def _record(request_id="R1"):
    return MintRecordStore().load(request_id)


def _design(token_design_id="td-1"):
    return TokenDesignStore().get_by_id(token_design_id)


def _ledgers():
    return current_domain.repository_for(InventoryLedger)._dao.query.all().items


class FailingTokenDesignStore(TokenDesignStore):
    def mark_minted(self, token_design_id, actor_id):
        raise ExternalServiceError("document-store", "write timed out")


class FailingMintRecordStore(MintRecordStore):
    def record_onchain_result(self, request_id, result):
        raise ExternalServiceError("document-store", "write timed out")


class FailingOnModelLedgerService(InventoryLedgerService):
    def __init__(self, failing_model_id):
        super().__init__()
        self.failing_model_id = failing_model_id

    def upsert_from_mint(self, product_blueprint_id, token_design_id, model_id, product_ids):
        if model_id == self.failing_model_id:
            raise ExternalServiceError("document-store", "write timed out")
        return super().upsert_from_mint(product_blueprint_id, token_design_id, model_id, product_ids)


class UriAssigningUploader(FakeMetadataUploader):
    def upload_metadata(self, document):
        uri = super().upload_metadata(document)
        TokenDesignStore().update(
            "td-1", TokenDesignPatch(updated_by="user-2", metadata_uri="https://arweave.net/other")
        )
        return uri


class TestFreshRequest:
    def test_mints_once_and_fills_ledger(self, workflow, minter, seed_request):
        seed_request("R1", products=[("p1", "m1"), ("p2", "m1")])

        result = workflow.fulfill("R1")

        assert len(minter.mint_calls) == 1
        assert result.signature
        assert _design().minted is True

        ledger = InventoryLedgerService().get("pb-1__td-1")
        assert ledger.stock_for("m1").products == ["p1", "p2"]
        assert ledger.stock_for("m1").accumulation == 2

    def test_persists_result_on_record(self, workflow, seed_request):
        seed_request("R1")

        result = workflow.fulfill("R1")

        record = _record()
        assert record.minted is True
        assert record.minted_at is not None
        assert record.transaction_result().signature == result.signature
        assert record.transaction_result().mint_address == result.mint_address

    def test_prepares_metadata_before_minting(self, workflow, storage, uploader, seed_request):
        seed_request("R1")

        workflow.fulfill("R1")

        assert storage.has_object("token-icons", "td-1/.keep")
        assert storage.has_object("token-contents", "td-1/.keep")
        assert len(uploader.calls) == 1
        assert _design().metadata_uri.startswith("https://arweave.net/")

    def test_groups_products_by_model(self, workflow, seed_request):
        seed_request("R1", products=[("p1", "m2"), ("p2", "m1"), ("p3", "m2")])

        workflow.fulfill("R1")

        ledger = InventoryLedgerService().get("pb-1__td-1")
        assert ledger.model_ids == ["m1", "m2"]
        assert ledger.stock_for("m1").products == ["p2"]
        assert ledger.stock_for("m2").products == ["p1", "p3"]

    def test_failed_items_are_not_stocked(self, workflow, seed_request):
        seed_request("R1", products=[("p1", "m1"), ("p2", "m1")], passed=["p1"])

        workflow.fulfill("R1")

        assert InventoryLedgerService().get("pb-1__td-1").stock_for("m1").products == ["p1"]


class TestRepeatFulfillment:
    def test_second_call_reuses_result(self, workflow, minter, seed_request):
        seed_request("R1")
        first = workflow.fulfill("R1")

        second = workflow.fulfill("R1")

        assert len(minter.mint_calls) == 1
        assert second.signature == first.signature
        assert second.mint_address == first.mint_address

    def test_second_call_skips_metadata(self, workflow, storage, uploader, seed_request):
        seed_request("R1")
        workflow.fulfill("R1")

        workflow.fulfill("R1")

        assert len(storage.calls) == 1
        assert len(uploader.calls) == 1

    def test_second_call_leaves_ledger_unchanged(self, workflow, seed_request):
        seed_request("R1")
        workflow.fulfill("R1")

        workflow.fulfill("R1")

        stock = InventoryLedgerService().get("pb-1__td-1").stock_for("m1")
        assert stock.products == ["p1", "p2"]
        assert stock.accumulation == 2

    def test_legacy_minted_record_without_mint_time_reconciles(self, workflow, minter, seed_request):
        seed_request("R1")
        repo = current_domain.repository_for(MintRecord)
        repo._dao.delete(repo.get("R1"))
        repo.add(
            MintRecord(
                id="R1",
                token_design_id="td-1",
                passed_product_ids=["p1", "p2"],
                requested_by="user-1",
                minted=True,
                signature="sig-legacy",
                mint_address="addr-legacy",
            )
        )

        result = workflow.fulfill("R1")

        assert result.signature == "sig-legacy"
        assert result.mint_address == "addr-legacy"
        assert minter.mint_calls == []
        assert InventoryLedgerService().get("pb-1__td-1").stock_for("m1").accumulation == 2


class TestSharedLedger:
    def test_second_request_extends_same_model(self, workflow, minter, seed_request):
        seed_request("R1", products=[("p1", "m1"), ("p2", "m1")])
        seed_request("R2", products=[("p3", "m1")])

        workflow.fulfill("R1")
        workflow.fulfill("R2")

        stock = InventoryLedgerService().get("pb-1__td-1").stock_for("m1")
        assert stock.products == ["p1", "p2", "p3"]
        assert stock.accumulation == 3
        assert len(minter.mint_calls) == 2

    def test_second_request_reuses_metadata_uri(self, workflow, uploader, seed_request):
        seed_request("R1")
        seed_request("R2", products=[("p3", "m1")])

        workflow.fulfill("R1")
        uri = _design().metadata_uri
        workflow.fulfill("R2")

        assert len(uploader.calls) == 1
        assert _design().metadata_uri == uri

    def test_metadata_uri_assigned_by_another_request_is_reused(self, workflow, minter, seed_request):
        seed_request("R1")
        workflow.metadata_preparer.uploader = UriAssigningUploader()

        result = workflow.fulfill("R1")

        assert result.signature
        assert len(minter.mint_calls) == 1
        assert _design().metadata_uri == "https://arweave.net/other"
        assert _record().minted is True


class TestPreconditions:
    def test_unconfigured_workflow(self):
        with pytest.raises(ConfigurationError) as exc:
            MintFulfillmentWorkflow().fulfill("R1")
        assert "minter" in str(exc.value)

    def test_empty_request_id(self, workflow):
        with pytest.raises(ValidationError):
            workflow.fulfill("   ")

    def test_unknown_request(self, workflow):
        with pytest.raises(ObjectNotFoundError):
            workflow.fulfill("missing")

    def test_record_without_token_design(self, workflow, minter):
        current_domain.repository_for(MintRecord).add(
            MintRecord(id="R1", passed_product_ids=["p1"], requested_by="user-1")
        )
        with pytest.raises(ValidationError) as exc:
            workflow.fulfill("R1")
        assert "token_design_id" in exc.value.messages
        assert minter.calls == []

    def test_unresolvable_product_blueprint(self, workflow, minter, seed_request):
        seed_request("R1")
        workflow.production_resolver = MappingProductionResolver({})

        with pytest.raises(ValidationError) as exc:
            workflow.fulfill("R1")
        assert "product_blueprint_id" in exc.value.messages
        assert minter.calls == []

    def test_no_passed_products_fails_without_mutation(self, workflow, minter, storage, seed_request):
        seed_request("R3", products=[("p1", "m1")], passed=[])

        with pytest.raises(ValidationError) as exc:
            workflow.fulfill("R3")

        assert "passed_product_ids" in exc.value.messages
        assert minter.calls == []
        assert storage.calls == []
        assert _record("R3").minted is False
        assert _ledgers() == []


class TestActorResolution:
    def test_requester_is_the_actor(self, workflow, seed_request):
        seed_request("R1", requested_by="user-1")

        workflow.fulfill("R1", actor_id="ops-1")

        assert _design().updated_by == "user-1"

    def test_falls_back_to_invocation_actor(self, workflow, seed_request):
        seed_request("R1", requested_by="")

        workflow.fulfill("R1", actor_id="ops-1")

        assert _design().updated_by == "ops-1"

    def test_legacy_creator_is_the_actor(self, workflow, seed_request):
        record = seed_request("R1", requested_by="")
        record.created_by = "legacy-user"
        MintRecordStore().update(record)

        workflow.fulfill("R1", actor_id="ops-1")

        assert _design().updated_by == "legacy-user"

    def test_no_actor_fails(self, workflow, minter, seed_request):
        seed_request("R1", requested_by="")

        with pytest.raises(ValidationError) as exc:
            workflow.fulfill("R1")

        assert "actor_id" in exc.value.messages
        assert minter.calls == []


class TestFailuresBeforeMint:
    def test_storage_failure_aborts(self, workflow, minter, storage, seed_request):
        seed_request("R1")
        storage.configure(should_succeed=False)

        with pytest.raises(ExternalServiceError):
            workflow.fulfill("R1")

        assert minter.calls == []
        assert _record().minted is False
        assert _design().metadata_uri is None

    def test_upload_failure_aborts(self, workflow, minter, uploader, seed_request):
        seed_request("R1")
        uploader.configure(should_succeed=False)

        with pytest.raises(ExternalServiceError):
            workflow.fulfill("R1")

        assert minter.calls == []
        assert _record().minted is False

    def test_empty_metadata_uri_aborts(self, workflow, minter, uploader, seed_request):
        seed_request("R1")
        uploader.configure(should_succeed=True, uri_override="  ")

        with pytest.raises(ExternalServiceError):
            workflow.fulfill("R1")

        assert minter.mint_calls == []
        assert _design().metadata_uri is None

    def test_onchain_failure_aborts(self, workflow, minter, seed_request):
        seed_request("R1")
        minter.configure(should_succeed=False, failure_reason="Blockhash not found")

        with pytest.raises(ExternalServiceError) as exc:
            workflow.fulfill("R1")

        assert "Blockhash not found" in str(exc.value)
        assert _record().minted is False
        assert _design().minted is False
        assert _ledgers() == []

    def test_retry_after_onchain_failure_succeeds(self, workflow, minter, seed_request):
        seed_request("R1")
        minter.configure(should_succeed=False)
        with pytest.raises(ExternalServiceError):
            workflow.fulfill("R1")

        minter.configure(should_succeed=True)
        workflow.fulfill("R1")

        assert _record().minted is True
        assert len(minter.mint_calls) == 2


class TestFailuresAfterMint:
    def test_token_design_failure_is_not_fatal(self, workflow, seed_request):
        seed_request("R1")
        workflow.token_designs = FailingTokenDesignStore()

        result = workflow.fulfill("R1")

        assert _record().transaction_result().signature == result.signature
        assert InventoryLedgerService().get("pb-1__td-1").stock_for("m1").accumulation == 2

    def test_record_failure_still_reconciles_inventory(self, workflow, seed_request):
        seed_request("R1")
        workflow.mint_records = FailingMintRecordStore()

        result = workflow.fulfill("R1")

        assert result.signature
        assert _record().minted is False
        assert InventoryLedgerService().get("pb-1__td-1").stock_for("m1").accumulation == 2

    def test_unrecorded_mint_is_recovered_on_retry(self, workflow, minter, seed_request):
        seed_request("R1")
        workflow.mint_records = FailingMintRecordStore()
        first = workflow.fulfill("R1")

        workflow.mint_records = MintRecordStore()
        second = workflow.fulfill("R1")

        assert len(minter.mint_calls) == 1
        assert second == first
        assert _record().transaction_result().signature == first.signature

    def test_mint_executed_elsewhere_is_adopted(self, workflow, minter, seed_request):
        seed_request("R1")
        onchain = minter.mint("R1")

        result = workflow.fulfill("R1")

        assert result == onchain
        assert len(minter.mint_calls) == 1
        assert _record().minted is True


class TestInventoryConsistency:
    def test_no_model_groups_keeps_mint(self, workflow, minter, seed_request):
        seed_request("R4", products=[("p4", None)])

        with pytest.raises(InventoryConsistencyError):
            workflow.fulfill("R4")

        record = _record("R4")
        assert len(minter.mint_calls) == 1
        assert record.minted is True
        assert record.transaction_result() is not None
        assert _ledgers() == []

    def test_retry_does_not_mint_again(self, workflow, minter, seed_request):
        seed_request("R4", products=[("p4", None)])
        with pytest.raises(InventoryConsistencyError):
            workflow.fulfill("R4")

        with pytest.raises(InventoryConsistencyError):
            workflow.fulfill("R4")

        assert len(minter.mint_calls) == 1

    def test_missing_inspection_batch(self, workflow, minter, seed_request):
        seed_request("R1")
        repo = current_domain.repository_for(InspectionBatch)
        repo._dao.delete(repo.get("R1"))

        with pytest.raises(ObjectNotFoundError):
            workflow.fulfill("R1")
        assert _record().minted is True

    def test_ledger_failure_aborts_and_keeps_earlier_models(self, workflow, minter, seed_request):
        seed_request("R1", products=[("p1", "m1"), ("p2", "m2"), ("p3", "m3")])
        workflow.ledger = FailingOnModelLedgerService("m2")

        with pytest.raises(ExternalServiceError):
            workflow.fulfill("R1")

        ledger = InventoryLedgerService().get("pb-1__td-1")
        assert ledger.model_ids == ["m1"]
        assert ledger.stock_for("m1").products == ["p1"]
        assert _record().minted is True
        assert len(minter.mint_calls) == 1


class TestConcurrentFulfillment:
    def test_same_request_mints_once(self, workflow, minter, seed_request):
        from minting.domain import minting

        seed_request("R1")
        results, errors = [], []
        barrier = threading.Barrier(4)

        def run():
            with minting.domain_context():
                barrier.wait()
                try:
                    results.append(workflow.fulfill("R1"))
                except Exception as exc:  # noqa: BLE001
                    errors.append(exc)

        threads = [threading.Thread(target=run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(minter.mint_calls) == 1
        assert len({r.signature for r in results}) == 1
        assert InventoryLedgerService().get("pb-1__td-1").stock_for("m1").accumulation == 2
