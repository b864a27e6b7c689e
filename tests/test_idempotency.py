import asyncio
import unittest
from datetime import datetime, timedelta

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.testclient import TestClient

from app.idempotency import route as idempotency_route
from app.idempotency.models import IdempotencyRecord
from app.idempotency.route import IdempotentRoute
from app.idempotency.service import IdempotencyService
from app.storage.memory import InMemoryIdempotencyStore


class FailingStore(InMemoryIdempotencyStore):
    async def add(self, record):
        raise RuntimeError("database down")


def _build_app():
    calls = {"create": 0, "reject": 0, "update": 0}
    router = APIRouter(route_class=IdempotentRoute)

    @router.post("/things")
    async def create_thing():
        calls["create"] += 1
        return {"id": f"thing-{calls['create']}"}

    @router.post("/rejects")
    async def reject():
        calls["reject"] += 1
        raise HTTPException(status_code=400, detail="bad input")

    @router.get("/things")
    async def list_things():
        return {"count": calls["create"]}

    app = FastAPI()
    app.include_router(router)
    return app, calls


ALICE = {"X-User-Id": "alice"}


class IdempotentRouteTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryIdempotencyStore()
        idempotency_route.set_service(IdempotencyService(self.store))
        self.addCleanup(idempotency_route.set_service, None)
        self.app, self.calls = _build_app()
        self.client = TestClient(self.app)

    def test_replay_is_byte_identical_and_handler_runs_once(self):
        headers = {**ALICE, "Idempotency-Key": "key-1"}
        first = self.client.post("/things", headers=headers)
        second = self.client.post("/things", headers=headers)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, first.status_code)
        self.assertEqual(second.content, first.content)
        self.assertEqual(second.headers.items(), first.headers.items())
        self.assertEqual(self.calls["create"], 1)

    def test_different_keys_run_separately(self):
        self.client.post("/things", headers={**ALICE, "Idempotency-Key": "a"})
        self.client.post("/things", headers={**ALICE, "Idempotency-Key": "b"})
        self.assertEqual(self.calls["create"], 2)

    def test_no_key_means_no_dedup(self):
        self.client.post("/things", headers=ALICE)
        self.client.post("/things", headers=ALICE)
        self.assertEqual(self.calls["create"], 2)

    def test_failed_responses_are_not_cached(self):
        headers = {**ALICE, "Idempotency-Key": "key-2"}
        self.assertEqual(self.client.post("/rejects", headers=headers).status_code, 400)
        self.assertEqual(self.client.post("/rejects", headers=headers).status_code, 400)
        self.assertEqual(self.calls["reject"], 2)
        self.assertIsNone(asyncio.run(self.store.get("key-2")))

    def test_safe_methods_ignore_the_key(self):
        self.client.get("/things", headers={**ALICE, "Idempotency-Key": "key-3"})
        self.assertIsNone(asyncio.run(self.store.get("key-3")))

    def test_record_failure_does_not_change_the_response(self):
        idempotency_route.set_service(IdempotencyService(FailingStore()))
        response = self.client.post("/things", headers={**ALICE, "Idempotency-Key": "key-4"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"id": "thing-1"})

    def test_keyed_request_without_identity_is_unauthorized(self):
        self.client.post("/things", headers={**ALICE, "Idempotency-Key": "key-5"})
        response = self.client.post("/things", headers={"Idempotency-Key": "key-5"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.calls["create"], 1)

    def test_recorded_response_is_not_replayed_to_another_caller(self):
        first = self.client.post("/things", headers={**ALICE, "Idempotency-Key": "key-6"})
        other = self.client.post("/things", headers={"X-User-Id": "mallory", "Idempotency-Key": "key-6"})
        self.assertEqual(first.json(), {"id": "thing-1"})
        self.assertEqual(other.json(), {"id": "thing-2"})
        self.assertEqual(asyncio.run(self.store.get("key-6")).user_id, "alice")


class IdempotencyServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = InMemoryIdempotencyStore()
        self.service = IdempotencyService(self.store, ttl_hours=24)

    async def test_first_record_wins(self):
        await self.service.record("k", "u1", "POST", "/x", 200, [], '{"n": 1}')
        await self.service.record("k", "u1", "POST", "/x", 200, [], '{"n": 2}')
        cached = await self.service.lookup("k", "u1")
        self.assertEqual(cached.body, '{"n": 1}')

    async def test_lookup_is_scoped_to_the_recording_caller(self):
        await self.service.record("k", "u1", "POST", "/x", 200, [], "{}")
        self.assertIsNone(await self.service.lookup("k", "u2"))
        self.assertIsNotNone(await self.service.lookup("k", "u1"))

    async def test_non_2xx_not_recorded(self):
        await self.service.record("k", "u1", "POST", "/x", 500, [], "oops")
        self.assertIsNone(await self.service.lookup("k", "u1"))

    async def test_expired_records_are_hidden_and_purged(self):
        past = datetime.utcnow() - timedelta(hours=25)
        await self.store.add(IdempotencyRecord(
            key="old", user_id="u1", method="POST", path="/x", status_code=200,
            created_at=past, expires_at=past + timedelta(hours=24),
        ))
        self.assertIsNone(await self.service.lookup("old", "u1"))
        self.assertEqual(await self.service.purge_expired(), 1)
        self.assertIsNone(await self.store.get("old"))


if __name__ == "__main__":
    unittest.main()
