import unittest

from app.jobs.errors import QuotaExceeded, ResourceNotFound, UserBlocked
from app.jobs.models import JobKind
from app.models.user import UsageCounter, current_usage_month
from app.storage.memory import InMemoryUserStore
from app.usage.limiter import UsageLimiter
from app.usage.plans import KIND_OPERATIONS, UNLIMITED, check_limit, feature_for_kind, feature_for_operation, get_plan
from tests.fakes import make_user


class PlanTests(unittest.TestCase):
    def test_unknown_plan_falls_back_to_free(self):
        self.assertEqual(get_plan("platinum").id, "free")
        self.assertEqual(get_plan(None).id, "free")

    def test_feature_mapping(self):
        self.assertEqual(feature_for_operation("interview-score"), "interviews")
        self.assertEqual(feature_for_operation("resume-ats"), "ats_checks")
        self.assertEqual(feature_for_operation("resume-analysis"), "ats_checks")
        self.assertEqual(feature_for_operation("resume-generation"), "resume_generations")
        self.assertIsNone(feature_for_operation("chat-faq"))
        self.assertEqual(feature_for_kind(JobKind.ATS_REWRITE), "ats_checks")
        self.assertEqual(feature_for_kind(JobKind.RENDER_PDF), "resume_generations")
        self.assertIsNone(feature_for_kind(JobKind.PARSE_TEMPLATE))

    def test_metered_kinds_are_gated_by_their_operation(self):
        for kind, operation in KIND_OPERATIONS.items():
            self.assertIsNotNone(feature_for_operation(operation))
            self.assertEqual(feature_for_kind(kind), feature_for_operation(operation))
        self.assertEqual(feature_for_kind(JobKind.INTERVIEW_EVALUATE), "interviews")
        self.assertIsNone(feature_for_operation(None))

    def test_check_limit_under_and_at_quota(self):
        month = current_usage_month()
        under = check_limit("free", UsageCounter(ats_checks=2, usage_month=month), "ats_checks")
        self.assertTrue(under.allowed)
        self.assertEqual(under.remaining, 1)

        full = check_limit("free", UsageCounter(ats_checks=3, usage_month=month), "ats_checks")
        self.assertFalse(full.allowed)
        self.assertEqual((full.used, full.limit, full.remaining), (3, 3, 0))

    def test_unlimited_and_unmapped_always_allowed(self):
        usage = UsageCounter(interviews=10_000)
        enterprise = check_limit("enterprise", usage, "interviews")
        self.assertTrue(enterprise.allowed)
        self.assertEqual(enterprise.limit, UNLIMITED)
        self.assertIsNone(enterprise.remaining)
        self.assertTrue(check_limit("free", usage, None).allowed)

    def test_stale_month_reads_as_zero(self):
        stale = UsageCounter(ats_checks=3, interviews=3, usage_month="2000-01")
        fresh = stale.for_month(current_usage_month())
        self.assertEqual((fresh.ats_checks, fresh.interviews), (0, 0))
        self.assertEqual(fresh.usage_month, current_usage_month())


class UsageLimiterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.users = InMemoryUserStore()
        self.limiter = UsageLimiter(self.users)

    async def test_quota_exhausted_raises_429_details(self):
        user = make_user(usage=UsageCounter(ats_checks=3, usage_month=current_usage_month()))
        await self.users.save(user)
        with self.assertRaises(QuotaExceeded) as ctx:
            await self.limiter.enforce(user, "ats_checks")
        exc = ctx.exception
        self.assertEqual((exc.status_code, exc.used, exc.limit, exc.plan_id), (429, 3, 3, "free"))
        self.assertIn("Upgrade", exc.message)

    async def test_new_month_resets_before_check(self):
        user = make_user(usage=UsageCounter(ats_checks=3, usage_month="2000-01"))
        result = await self.limiter.enforce(user, "ats_checks")
        self.assertTrue(result.allowed)
        self.assertEqual(result.used, 0)

    async def test_check_is_read_only(self):
        user = make_user()
        await self.users.save(user)
        await self.limiter.check(user, "ats_checks")
        stored = await self.users.get(user.id)
        self.assertEqual(stored.usage.ats_checks, 0)

    async def test_increment_resets_stale_month_then_adds_one(self):
        await self.users.save(make_user(usage=UsageCounter(ats_checks=3, usage_month="2000-01")))
        await self.limiter.increment("user-1", "ats_checks")
        stored = await self.users.get("user-1")
        self.assertEqual(stored.usage.ats_checks, 1)
        self.assertEqual(stored.usage.usage_month, current_usage_month())

    async def test_increment_without_feature_is_noop(self):
        await self.users.save(make_user())
        await self.limiter.increment("user-1", None)
        stored = await self.users.get("user-1")
        self.assertEqual(stored.usage.model_dump(exclude={"usage_month"}),
                         {"interviews": 0, "ats_checks": 0, "resume_generations": 0})

    async def test_blocked_and_missing_users(self):
        await self.users.save(make_user("blocked", is_blocked=True))
        with self.assertRaises(UserBlocked):
            await self.limiter.load_user("blocked")
        with self.assertRaises(ResourceNotFound):
            await self.limiter.load_user("nobody")


if __name__ == "__main__":
    unittest.main()
