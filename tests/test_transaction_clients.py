import datetime

import pytest

from crm_backend.errors import InvalidInputError
from crm_backend.models import UserRole
from crm_backend.schemas.transactions import ClientActivityStatus
from crm_backend.services.access_scope import AccessScope
from crm_backend.services.transactions import (
    ClientFilters,
    classify_activity,
    get_client_detail,
    list_unique_clients,
)
from crm_backend.services.website_index import WebsiteIndex

NOW = datetime.datetime(2024, 6, 15, 12, 0)
UNRESTRICTED = AccessScope()


def _clients(result):
    return [item["client"] for item in result["items"]]


@pytest.fixture
def site(make_website):
    return make_website(name="Demo Site", url="demo.example.com")


class TestWebsiteIndex:
    def test_url_labels_win_over_names(self, db, make_website):
        by_name = make_website(name="shared", url="a.example.com")
        by_url = make_website(name="B", url="shared")

        index = WebsiteIndex.build(db)

        assert index.resolve("SHARED") == by_url.id
        assert index.resolve("a.example.com") == by_name.id

    def test_earliest_website_wins_for_equal_labels(self, db, make_website):
        first = make_website(name="Dup", url="one.example.com", created_at=datetime.datetime(2023, 1, 1))
        make_website(name="Dup", url="two.example.com", created_at=datetime.datetime(2024, 1, 1))

        assert WebsiteIndex.build(db).resolve("dup") == first.id

    def test_empty_index_is_falsy(self, db):
        assert not WebsiteIndex.build(db)


class TestClientListing:
    """Unique-client rollup over the ledger."""

    def test_rollups_per_client(self, db, site, make_customer, make_transaction):
        make_customer(site, "alice")
        make_transaction("alice", "DEPOSIT", 50, datetime.datetime(2024, 1, 1))
        make_transaction("alice", "DEPOSIT", 75, datetime.datetime(2024, 1, 5))
        make_transaction("alice", "WITHDRAW", 20, datetime.datetime(2024, 1, 7))

        result = list_unique_clients(db, scope=UNRESTRICTED, now=NOW)

        assert result["total"] == 1
        row = result["items"][0]
        assert row["client"] == "alice"
        assert row["transaction_count"] == 3
        assert row["total_deposits"] == pytest.approx(125)
        assert row["total_withdrawals"] == pytest.approx(20)
        assert row["last_deposit_date"] == datetime.datetime(2024, 1, 5)
        assert row["website"] == "demo.example.com"

    def test_unresolved_transactions_are_excluded(self, db, site, make_customer, make_transaction):
        make_customer(site, "alice")
        make_transaction("alice")
        make_transaction("stranger")
        make_transaction("alice", website="unknown.example.com")

        result = list_unique_clients(db, scope=UNRESTRICTED, now=NOW)

        assert _clients(result) == ["alice"]
        assert result["items"][0]["transaction_count"] == 1

    def test_client_in_two_tenants_counts_once(self, db, site, make_website, make_customer, make_transaction):
        other = make_website(name="Other", url="other.example.com")
        here = make_customer(site, "alice")
        there = make_customer(other, "alice")
        make_transaction("alice")
        make_transaction("alice", website="other.example.com")

        result = list_unique_clients(db, scope=UNRESTRICTED, now=NOW)

        assert result["total"] == 1
        assert result["total_pages"] == 1
        assert sorted(item["customer_id"] for item in result["items"]) == sorted([here.id, there.id])

        first_page = list_unique_clients(db, scope=UNRESTRICTED, limit=result["total"], now=NOW)
        assert len(first_page["items"]) == 1

    def test_resolves_website_by_name(self, db, site, make_customer, make_transaction):
        make_customer(site, "alice")
        make_transaction("alice", website="DEMO SITE")

        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, now=NOW)) == ["alice"]

    def test_no_websites_means_empty_page(self, db, make_transaction):
        make_transaction("alice")
        result = list_unique_clients(db, scope=UNRESTRICTED, now=NOW)
        assert result == {"items": [], "total": 0, "page": 1, "limit": 10, "total_pages": 0}

    def test_count_matches_pages(self, db, site, make_customer, make_transaction):
        for name in ["e", "a", "d", "b", "c"]:
            make_customer(site, name)
            make_transaction(name)
            make_transaction(name, "WITHDRAW", 1)

        seen = []
        for page in (1, 2, 3):
            result = list_unique_clients(db, scope=UNRESTRICTED, page=page, limit=2, now=NOW)
            assert result["total"] == 5
            assert result["total_pages"] == 3
            seen.extend(_clients(result))

        assert seen == ["a", "b", "c", "d", "e"]

    def test_search_and_branch(self, db, site, make_customer, make_transaction):
        make_customer(site, "alice")
        make_customer(site, "bob")
        make_transaction("alice", branch="North")
        make_transaction("bob", branch="South")

        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(search="LIC"), now=NOW)) == ["alice"]
        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(search="south"), now=NOW)) == ["bob"]
        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(branch="north"), now=NOW)) == ["alice"]

    def test_amount_ranges_use_customer_totals(self, db, site, make_customer, make_transaction):
        make_customer(site, "small", total_deposits=50)
        make_customer(site, "big", total_deposits=500, total_withdrawals=100)
        make_transaction("small")
        make_transaction("big")

        filters = ClientFilters(min_total_deposit_amount=100, max_total_deposit_amount=500)
        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=filters, now=NOW)) == ["big"]

        filters = ClientFilters(max_total_withdrawal_amount=0)
        assert _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=filters, now=NOW)) == ["small"]

    def test_inverted_range_is_rejected(self, db, site):
        with pytest.raises(InvalidInputError):
            list_unique_clients(
                db,
                scope=UNRESTRICTED,
                filters=ClientFilters(min_total_deposit_amount=10, max_total_deposit_amount=1),
            )

    def test_calendar_day_filters(self, db, site, make_customer, make_transaction):
        make_customer(
            site,
            "alice",
            first_deposit_date=datetime.datetime(2024, 1, 1, 8),
            last_deposit_date=datetime.datetime(2024, 2, 1, 23, 30),
            last_withdrawal_date=datetime.datetime(2024, 3, 1, 9),
            game_interest="slots",
        )
        make_customer(site, "bob", first_withdrawal_date=datetime.datetime(2023, 12, 31, 10))
        make_transaction("alice")
        make_transaction("bob")

        def run(**kwargs):
            return _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(**kwargs), now=NOW))

        assert run(last_deposit_date=datetime.date(2024, 2, 1)) == ["alice"]
        assert run(first_deposit_date=datetime.date(2024, 1, 1)) == ["alice"]
        assert run(last_withdrawal_date=datetime.date(2024, 3, 1)) == ["alice"]
        assert run(first_withdrawal_date=datetime.date(2023, 12, 31)) == ["bob"]
        assert run(game_interest="slots") == ["alice"]
        # greatest(last deposit, last withdrawal) / least(first deposit, first withdrawal)
        assert run(last_transaction_date=datetime.date(2024, 3, 1)) == ["alice"]
        assert run(last_transaction_date=datetime.date(2024, 2, 1)) == []
        assert run(first_transaction_date=datetime.date(2024, 1, 1)) == ["alice"]
        assert run(first_transaction_date=datetime.date(2023, 12, 31)) == ["bob"]

    def test_last_call_filters(self, db, site, make_customer, make_transaction, make_interaction):
        alice = make_customer(site, "alice")
        bob = make_customer(site, "bob")
        make_transaction("alice")
        make_transaction("bob")
        make_interaction(alice, content="[Outbound Call] Call initiated - no answer", created_at=datetime.datetime(2024, 6, 1, 9))
        make_interaction(alice, content="[Outbound Call] Call initiated - promised deposit", created_at=datetime.datetime(2024, 6, 10, 9))
        make_interaction(bob, content="Call - no answer", created_at=datetime.datetime(2024, 6, 1, 10))
        make_interaction(bob, type="note", content="later note", created_at=datetime.datetime(2024, 6, 12))

        def run(**kwargs):
            return _clients(list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(**kwargs), now=NOW))

        assert run(last_call_date=datetime.date(2024, 6, 1)) == ["bob"]
        assert run(last_call_date=datetime.date(2024, 6, 10)) == ["alice"]
        assert run(last_call_outcome="NO ANSWER") == ["bob"]
        assert run(last_call_date=datetime.date(2024, 6, 10), last_call_outcome="promised") == ["alice"]


class TestActivityStatus:
    """Boundaries: exactly 3 days is active, exactly 30 days is sleeping."""

    @pytest.mark.parametrize(
        "age, expected",
        [
            (datetime.timedelta(days=3), ClientActivityStatus.ACTIVE),
            (datetime.timedelta(days=3, seconds=1), ClientActivityStatus.INACTIVE),
            (datetime.timedelta(days=29), ClientActivityStatus.INACTIVE),
            (datetime.timedelta(days=30), ClientActivityStatus.SLEEPING),
        ],
    )
    def test_classifier_boundaries(self, age, expected):
        assert classify_activity(NOW - age, NOW) == expected

    def test_no_activity_is_sleeping(self):
        assert classify_activity(None, NOW) == ClientActivityStatus.SLEEPING

    def test_status_filter_matches_classifier(self, db, site, make_customer, make_transaction):
        make_customer(site, "active", last_deposit_date=NOW - datetime.timedelta(days=3))
        make_customer(
            site,
            "inactive",
            last_deposit_date=NOW - datetime.timedelta(days=40),
            last_withdrawal_date=NOW - datetime.timedelta(days=10),
        )
        make_customer(site, "sleeping", last_withdrawal_date=NOW - datetime.timedelta(days=30))
        make_customer(site, "never")
        for name in ["active", "inactive", "sleeping", "never"]:
            make_transaction(name)

        def run(status):
            result = list_unique_clients(db, scope=UNRESTRICTED, filters=ClientFilters(status=status), now=NOW)
            assert all(item["status"] == status for item in result["items"])
            return _clients(result)

        assert run(ClientActivityStatus.ACTIVE) == ["active"]
        assert run(ClientActivityStatus.INACTIVE) == ["inactive"]
        assert run(ClientActivityStatus.SLEEPING) == ["never", "sleeping"]


class TestAccessScope:
    """Non-admin callers are pinned to their website and panels."""

    @pytest.fixture
    def data(self, db, site, make_website, make_customer, make_transaction):
        other = make_website(name="Other", url="other.example.com")
        make_customer(site, "alice")
        make_customer(site, "bob")
        make_customer(other, "carol")
        make_transaction("alice", panel="Panel A")
        make_transaction("bob", panel="Panel B")
        make_transaction("carol", panel="Panel A", website="other.example.com")
        return other

    def test_admin_sees_everything(self, db, data, make_user):
        admin = make_user(role=UserRole.ADMIN)
        result = list_unique_clients(db, scope=AccessScope.for_user(admin), now=NOW)
        assert _clients(result) == ["alice", "bob", "carol"]

    def test_admin_website_filter(self, db, data, make_user):
        admin = make_user(role=UserRole.ADMIN)
        scope = AccessScope.for_user(admin, website="OTHER.example.com")
        assert _clients(list_unique_clients(db, scope=scope, now=NOW)) == ["carol"]

    def test_tenant_restriction(self, db, site, data, make_user):
        agent = make_user(website=site)
        assert _clients(list_unique_clients(db, scope=AccessScope.for_user(agent), now=NOW)) == ["alice", "bob"]

        foreign = AccessScope.for_user(agent, website="other.example.com")
        assert list_unique_clients(db, scope=foreign, now=NOW)["total"] == 0

    def test_assigned_panels_restrict(self, db, site, data, make_user):
        agent = make_user(website=site, panels=["panel a"])
        assert _clients(list_unique_clients(db, scope=AccessScope.for_user(agent), now=NOW)) == ["alice"]

    def test_requested_panel_inside_assignment(self, db, site, data, make_user):
        agent = make_user(website=site, panels=["Panel A", "Panel B"])
        scope = AccessScope.for_user(agent, panel="PANEL B")
        assert _clients(list_unique_clients(db, scope=scope, now=NOW)) == ["bob"]

    def test_requested_panel_outside_assignment_is_empty(self, db, site, data, make_user):
        agent = make_user(website=site, panels=["Panel A"])
        scope = AccessScope.for_user(agent, panel="Panel B")
        result = list_unique_clients(db, scope=scope, now=NOW)
        assert result["items"] == []
        assert result["total"] == 0

    def test_no_assigned_panels_uses_requested_panel(self, db, site, data, make_user):
        agent = make_user(website=site)
        scope = AccessScope.for_user(agent, panel="Panel B")
        assert _clients(list_unique_clients(db, scope=scope, now=NOW)) == ["bob"]


class TestClientDetail:
    def test_alice_summary(self, db, site, make_customer, make_transaction, make_tag):
        tag = make_tag()
        customer = make_customer(site, "alice", tag_id=tag.id, total_deposits=999)
        make_transaction("alice", "DEPOSIT", 50, datetime.datetime(2024, 1, 1), branch="North")
        make_transaction("alice", "DEPOSIT", 75, datetime.datetime(2024, 1, 5), branch="South")
        make_transaction("alice", "WITHDRAW", 20, datetime.datetime(2024, 1, 7))

        detail = get_client_detail(db, client="alice", scope=UNRESTRICTED)

        assert detail["customer_id"] == customer.id
        assert detail["tag"]["name"] == "VIP"
        assert detail["branch"] == "South"
        assert detail["website"] == "demo.example.com"
        assert [t.amount for t in detail["deposits"]] == [75, 50]
        assert detail["summary"] == {
            "total_deposits": pytest.approx(125),
            "total_withdrawals": pytest.approx(20),
            "deposit_count": 2,
            "withdrawal_count": 1,
            "last_deposit_date": datetime.datetime(2024, 1, 5),
        }

    def test_unknown_client_has_placeholders(self, db, site):
        detail = get_client_detail(db, client="nobody", scope=UNRESTRICTED)
        assert detail["customer_id"] is None
        assert detail["tag"] is None
        assert detail["branch"] == "N/A"
        assert detail["website"] == "N/A"
        assert detail["summary"]["deposit_count"] == 0
        assert detail["summary"]["last_deposit_date"] is None

    def test_withdrawal_only_client(self, db, site, make_transaction):
        make_transaction("wanda", "WITHDRAW", 5, branch="East")
        detail = get_client_detail(db, client="wanda", scope=UNRESTRICTED)
        assert detail["customer_id"] is None
        assert detail["branch"] == "East"
