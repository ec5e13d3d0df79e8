import unittest
from datetime import timedelta
from unittest import mock

from factories import NOW, add_subscription, add_user, make_session_factory
from remindly.models.subscription import Subscription, SubscriptionStatus, SubscriptionType
from remindly.services import subscription_store
from remindly.services.subscription_store import (
    SubscriptionFields,
    find_active,
    list_syncable,
    upsert_by_external_id,
)


def _fields(status=SubscriptionStatus.ACTIVE, start=None, quota=125, ends_at=None):
    start = start or (NOW - timedelta(days=2))
    return SubscriptionFields(
        status=status,
        start_time=start,
        renews_at=start + timedelta(days=30),
        ends_at=ends_at,
        product_id="prod_1",
        variant_id="var_1",
        quota=quota,
        type=SubscriptionType.PRO,
    )


class TestSubscriptionStore(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.user = add_user(self.db)

    def tearDown(self):
        self.db.close()

    def test_upsert_twice_keeps_one_row(self):
        fields = _fields()
        upsert_by_external_id(self.db, "sub_1", fields, user_id=self.user.id)
        upsert_by_external_id(self.db, "sub_1", fields, user_id=self.user.id)
        rows = self.db.query(Subscription).filter(Subscription.external_subscription_id == "sub_1").all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].start_time, fields.start_time)
        self.assertEqual(rows[0].status, "active")

    def test_update_overwrites_window_and_status_only(self):
        upsert_by_external_id(self.db, "sub_1", _fields(quota=125), user_id=self.user.id)
        later = _fields(
            status=SubscriptionStatus.PAST_DUE,
            start=NOW - timedelta(days=1),
            quota=999,
            ends_at=NOW + timedelta(days=10),
        )
        sub = upsert_by_external_id(self.db, "sub_1", later, user_id=self.user.id)
        self.assertEqual(sub.status, "past_due")
        self.assertEqual(sub.start_time, later.start_time)
        self.assertEqual(sub.renews_at, later.renews_at)
        self.assertEqual(sub.ends_at, later.ends_at)
        self.assertEqual(sub.quota, 125)
        self.assertEqual(sub.type, SubscriptionType.PRO.value)

    def test_round_trip_through_find_active(self):
        fields = _fields(ends_at=NOW + timedelta(days=40))
        upsert_by_external_id(self.db, "sub_1", fields, user_id=self.user.id)
        found = find_active(self.db, self.user.id, NOW)
        self.assertIsNotNone(found)
        self.assertEqual(found.status, SubscriptionStatus.ACTIVE.value)
        self.assertEqual(found.start_time, fields.start_time)
        self.assertEqual(found.renews_at, fields.renews_at)
        self.assertEqual(found.ends_at, fields.ends_at)

    def test_find_active_uses_status_not_dates(self):
        # Still active at the provider even though the window looks stale.
        add_subscription(self.db, self.user.id, start_time=NOW - timedelta(days=400))
        self.assertIsNotNone(find_active(self.db, self.user.id, NOW))

        other = add_user(self.db, email="grace@example.com")
        add_subscription(self.db, other.id, external_subscription_id="sub_2", status=SubscriptionStatus.ON_TRIAL)
        self.assertIsNone(find_active(self.db, other.id, NOW))

    def test_find_active_prefers_latest_start(self):
        add_subscription(self.db, self.user.id, "sub_old", start_time=NOW - timedelta(days=20), quota=125)
        add_subscription(self.db, self.user.id, "sub_new", start_time=NOW - timedelta(days=1), quota=250)
        self.assertEqual(find_active(self.db, self.user.id, NOW).external_subscription_id, "sub_new")

    def test_list_syncable_skips_expired(self):
        add_subscription(self.db, self.user.id, "sub_a", status=SubscriptionStatus.ACTIVE)
        add_subscription(self.db, self.user.id, "sub_b", status=SubscriptionStatus.EXPIRED)
        add_subscription(self.db, self.user.id, "sub_c", status=SubscriptionStatus.PAUSED)
        ids = [s.external_subscription_id for s in list_syncable(self.db)]
        self.assertEqual(ids, ["sub_a", "sub_c"])


class TestSubscriptionStatus(unittest.TestCase):
    def test_provider_vocabulary(self):
        self.assertIs(SubscriptionStatus.from_provider("on_trial"), SubscriptionStatus.ON_TRIAL)
        self.assertIs(SubscriptionStatus.from_provider("past_due"), SubscriptionStatus.PAST_DUE)
        self.assertIs(SubscriptionStatus.from_provider(" Active "), SubscriptionStatus.ACTIVE)

    def test_unrecognised_is_unknown(self):
        self.assertIs(SubscriptionStatus.from_provider("paused_forever"), SubscriptionStatus.UNKNOWN)
        self.assertIs(SubscriptionStatus.from_provider(None), SubscriptionStatus.UNKNOWN)


class TestConcurrentUpsert(unittest.TestCase):
    def setUp(self):
        session_factory = make_session_factory()
        self.db = session_factory()
        self.other = session_factory()
        self.user = add_user(self.db)

    def tearDown(self):
        self.other.close()
        self.db.close()

    def test_conflicting_insert_becomes_an_update(self):
        user_id = self.user.id
        lookup = subscription_store.find_by_external_id
        calls = []

        def lookup_before_other_insert(db, external_subscription_id):
            calls.append(external_subscription_id)
            if len(calls) == 1:
                add_subscription(self.other, user_id, external_subscription_id)
                return None
            return lookup(db, external_subscription_id)

        later = _fields(status=SubscriptionStatus.PAST_DUE, start=NOW - timedelta(days=1), quota=999)
        with mock.patch.object(subscription_store, "find_by_external_id", side_effect=lookup_before_other_insert):
            sub = upsert_by_external_id(self.db, "sub_1", later, user_id=user_id)

        self.assertEqual(len(calls), 2)
        self.assertEqual(sub.status, "past_due")
        self.assertEqual(sub.start_time, later.start_time)
        self.assertEqual(sub.quota, 125)
        self.other.expire_all()
        rows = self.other.query(Subscription).filter(Subscription.external_subscription_id == "sub_1").all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].status, "past_due")


if __name__ == "__main__":
    unittest.main()
