"""Application tests for discount management, code application and usage commit."""

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from ordering.discount.discount import Discount
from ordering.discount.management import CreateDiscount, DeactivateDiscount
from ordering.discount.validator import apply_code, commit_usage, resolve
from ordering.domain import ordering
from ordering.errors import DiscountRejected, DiscountRejection
from protean import current_domain
from protean.exceptions import ValidationError


def _create_discount(**overrides):
    defaults = {"code": "SAVE10", "discount_type": "percentage", "value": 10.0}
    defaults.update(overrides)
    return current_domain.process(CreateDiscount(**defaults), asynchronous=False)


class TestCreateDiscount:
    def test_create(self):
        discount_id = _create_discount(code="welcome5", discount_type="fixed", value=5.0)
        discount = current_domain.repository_for(Discount).get(discount_id)
        assert discount.code == "WELCOME5"
        assert discount.discount_type == "fixed"

    def test_duplicate_code_is_rejected(self):
        _create_discount()
        with pytest.raises(ValidationError) as exc:
            _create_discount(code="save10")
        assert "already exists" in str(exc.value)

    def test_deactivate(self):
        discount_id = _create_discount()
        current_domain.process(DeactivateDiscount(discount_id=discount_id), asynchronous=False)
        assert current_domain.repository_for(Discount).get(discount_id).is_active is False


class TestApplyCode:
    def test_lookup_is_case_insensitive(self):
        _create_discount()
        assert resolve(" save10 ").code == "SAVE10"

    def test_unknown_code(self):
        with pytest.raises(DiscountRejected) as exc:
            apply_code("NOPE", Decimal("60.00"))
        assert exc.value.reason == DiscountRejection.NOT_FOUND
        assert exc.value.message == "This discount code doesn't exist"

    def test_blank_code(self):
        with pytest.raises(DiscountRejected) as exc:
            apply_code("   ", Decimal("60.00"))
        assert exc.value.reason == DiscountRejection.NOT_FOUND

    def test_applied_amount(self):
        discount_id = _create_discount()
        applied = apply_code("save10", Decimal("60.00"))
        assert applied.discount_id == discount_id
        assert applied.amount == Decimal("6.00")

    def test_expired_code(self):
        _create_discount(valid_until=datetime.now(UTC) - timedelta(days=1))
        with pytest.raises(DiscountRejected) as exc:
            apply_code("SAVE10", Decimal("60.00"))
        assert exc.value.reason == DiscountRejection.EXPIRED

    def test_applying_never_counts_usage(self):
        discount_id = _create_discount(usage_limit=1)
        apply_code("SAVE10", Decimal("60.00"))
        apply_code("SAVE10", Decimal("60.00"))
        assert current_domain.repository_for(Discount).get(discount_id).used_count == 0


class TestCommitUsage:
    def test_commit_increments(self):
        discount_id = _create_discount(usage_limit=5)
        assert commit_usage(discount_id, "ord-1") == 1
        assert commit_usage(discount_id, "ord-2") == 2

    def test_commit_is_idempotent_per_order(self):
        discount_id = _create_discount(usage_limit=5)
        commit_usage(discount_id, "ord-1")
        assert commit_usage(discount_id, "ord-1") == 1

    def test_commit_past_limit_is_rejected(self):
        discount_id = _create_discount(usage_limit=1)
        commit_usage(discount_id, "ord-1")
        with pytest.raises(DiscountRejected) as exc:
            commit_usage(discount_id, "ord-2")
        assert exc.value.reason == DiscountRejection.USAGE_EXHAUSTED
        assert current_domain.repository_for(Discount).get(discount_id).used_count == 1

    def test_unknown_discount(self):
        with pytest.raises(DiscountRejected) as exc:
            commit_usage("missing", "ord-1")
        assert exc.value.reason == DiscountRejection.NOT_FOUND

    def test_concurrent_commits_never_exceed_limit(self):
        discount_id = _create_discount(usage_limit=3)

        def _commit(n):
            with ordering.domain_context():
                try:
                    commit_usage(discount_id, f"ord-{n}")
                    return True
                except DiscountRejected:
                    return False

        with ThreadPoolExecutor(max_workers=10) as pool:
            outcomes = list(pool.map(_commit, range(10)))

        assert outcomes.count(True) == 3
        assert current_domain.repository_for(Discount).get(discount_id).used_count == 3

    def test_stale_write_is_retried_against_a_fresh_read(self, monkeypatch):
        discount_id = _create_discount(usage_limit=2)
        _commit_between_read_and_write(monkeypatch, discount_id, "ord-other")

        assert commit_usage(discount_id, "ord-1") == 2
        stored = current_domain.repository_for(Discount).get(discount_id)
        assert sorted(r.order_id for r in stored.redemptions) == ["ord-1", "ord-other"]

    def test_cap_is_rechecked_after_a_stale_write(self, monkeypatch):
        discount_id = _create_discount(usage_limit=1)
        _commit_between_read_and_write(monkeypatch, discount_id, "ord-other")

        with pytest.raises(DiscountRejected) as exc:
            commit_usage(discount_id, "ord-1")

        assert exc.value.reason == DiscountRejection.USAGE_EXHAUSTED
        assert current_domain.repository_for(Discount).get(discount_id).used_count == 1


def _commit_between_read_and_write(monkeypatch, discount_id, other_order_id):
    """Land another order's redemption right after the next read of the discount."""
    repo_cls = type(current_domain.repository_for(Discount))
    original_get = repo_cls.get
    landed = []

    def _get(self, identifier):
        discount = original_get(self, identifier)
        if not landed:
            landed.append(other_order_id)
            commit_usage(discount_id, other_order_id)
        return discount

    monkeypatch.setattr(repo_cls, "get", _get)
