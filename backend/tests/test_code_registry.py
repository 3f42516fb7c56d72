"""
Code registry tests: token codec, generation, ownership moves, reconciliation.
"""

import pytest

from dealerhub.errors import InsufficientCodes, InvalidQuantity
from dealerhub.extensions import db
from dealerhub.models import Code, CODE_STATUS_USED
from dealerhub.permissions import Role
from dealerhub.services.code_registry import (
    TOKEN_ALPHABET,
    TOKEN_WIDTH,
    allocate_ids,
    count_available,
    decode_token,
    encode_token,
    generate_codes,
    list_codes,
    reassign_codes,
    reconcile_balances,
)


# =============================================================================
# TOKEN CODEC
# =============================================================================


class TestTokens:

    @pytest.mark.parametrize("code_id", [1, 2, 31, 32, 1000, 123456789, 2 ** 40 - 1])
    def test_decode_inverts_encode(self, code_id):
        assert decode_token(encode_token(code_id)) == code_id

    def test_fixed_width_alphabet(self):
        token = encode_token(42)
        assert len(token) == TOKEN_WIDTH
        assert set(token) <= set(TOKEN_ALPHABET)

    def test_neighbours_do_not_look_alike(self):
        a, b = encode_token(100), encode_token(101)
        assert a != b
        assert a[:-1] != b[:-1]

    def test_first_ten_thousand_ids_are_distinct(self):
        tokens = {encode_token(i) for i in range(1, 10001)}
        assert len(tokens) == 10000

    def test_decode_is_forgiving(self):
        token = encode_token(777)
        messy = token.lower()[:4] + "-" + token.lower()[4:]
        assert decode_token(messy) == 777
        assert decode_token(token.replace("1", "I").replace("0", "O")) == 777

    @pytest.mark.parametrize("bad", ["", "ABC", "ABCDEFGHJ", "ABCDEFGU"])
    def test_decode_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            decode_token(bad)

    @pytest.mark.parametrize("code_id", [0, -1, 2 ** 40])
    def test_encode_rejects_out_of_range(self, code_id):
        with pytest.raises(ValueError):
            encode_token(code_id)


# =============================================================================
# GENERATION
# =============================================================================


class TestGenerate:

    def test_generates_available_codes_for_owner(self, db_session, admin, distributor):
        codes = generate_codes(5, owner_id=distributor.id, issued_by_id=admin.id)
        db_session.commit()

        assert len(codes) == 5
        assert count_available(distributor.id) == 5
        for code in list_codes(distributor.id):
            assert code.issued_by_id == admin.id
            assert code.status == "available"
            assert decode_token(code.token) == code.id

    def test_ids_continue_across_batches(self, db_session, admin, distributor):
        first = generate_codes(3, owner_id=distributor.id, issued_by_id=admin.id)
        second = generate_codes(2, owner_id=distributor.id, issued_by_id=admin.id)
        db_session.commit()

        ids = [c.id for c in first + second]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5
        assert len({c.token for c in first + second}) == 5

    def test_allocate_ids_is_consecutive(self, db_session):
        assert allocate_ids("test-seq", 3) == range(1, 4)
        assert allocate_ids("test-seq", 2) == range(4, 6)
        db_session.commit()

    def test_rolled_back_allocation_is_returned(self, db_session):
        allocate_ids("test-seq", 10)
        db_session.rollback()
        assert allocate_ids("test-seq", 1) == range(1, 2)

    @pytest.mark.parametrize("count", [0, -3, True, 2.5, "4"])
    def test_rejects_bad_count(self, db_session, admin, count):
        with pytest.raises(InvalidQuantity):
            generate_codes(count, owner_id=admin.id, issued_by_id=admin.id)


# =============================================================================
# REASSIGNMENT
# =============================================================================


class TestReassign:

    def test_moves_exactly_count_lowest_ids(self, db_session, make_account, distributor):
        retailer = make_account(Role.RETAILER, created_by=distributor)
        holder = make_account(Role.DISTRIBUTOR, balance=6)
        before = [c.id for c in list_codes(holder.id)]

        moved = reassign_codes(holder.id, retailer.id, 4)
        db_session.commit()

        assert [c.id for c in moved] == before[:4]
        assert count_available(holder.id) == 2
        assert count_available(retailer.id) == 4

    def test_insufficient_codes(self, db_session, make_account):
        holder = make_account(Role.DISTRIBUTOR, balance=2)
        other = make_account(Role.RETAILER)

        with pytest.raises(InsufficientCodes):
            reassign_codes(holder.id, other.id, 3)
        db_session.rollback()

        assert count_available(holder.id) == 2
        assert count_available(other.id) == 0

    def test_used_codes_are_not_moved(self, db_session, make_account):
        holder = make_account(Role.DISTRIBUTOR, balance=3)
        other = make_account(Role.RETAILER)
        first = list_codes(holder.id)[0]
        first.status = CODE_STATUS_USED
        db_session.commit()

        with pytest.raises(InsufficientCodes):
            reassign_codes(holder.id, other.id, 3)
        db_session.rollback()

        moved = reassign_codes(holder.id, other.id, 2)
        db_session.commit()
        assert first.id not in {c.id for c in moved}
        assert [c.id for c in list_codes(holder.id, status=CODE_STATUS_USED)] == [first.id]


# =============================================================================
# RECONCILIATION
# =============================================================================


class TestReconcile:

    def test_clean_state(self, db_session, admin, make_account):
        make_account(Role.DISTRIBUTOR, created_by=admin, balance=4)
        report = reconcile_balances()
        assert report == {"drifted": [], "orphaned": []}

    def test_reports_drift_and_skips_admin(self, db_session, admin, make_account):
        dealer = make_account(Role.DISTRIBUTOR, created_by=admin, balance=4)
        dealer.balance = 7
        db_session.commit()

        report = reconcile_balances()

        assert report["drifted"] == [{
            "account_id": dealer.id,
            "role": "Distributor",
            "balance": 7,
            "available_codes": 4,
        }]

    def test_reports_orphaned_codes(self, db_session, admin):
        generate_codes(3, owner_id="gone", issued_by_id=admin.id)
        db_session.commit()

        report = reconcile_balances()

        assert report["orphaned"] == [{"owner_id": "gone", "available_codes": 3}]
        assert db.session.query(Code).count() == 3
