import asyncio
import unittest
from unittest.mock import patch

from fastapi import HTTPException
from fastapi.testclient import TestClient

from comments_app.main import create_app
from comments_app.models import DraftPatchReq, SubmitReq
from comments_app.routers import comments
from comments_app.services.comment_sessions import CommentSessionRegistry
from comments_app.services.comment_store import CreateResult, MemoryCommentStore
from comments_app.services.name_cache import MemoryNameCache


def run_async(coro):
    return asyncio.run(coro)


class FailingWriteStore(MemoryCommentStore):
    async def create(self, entry):
        return CreateResult(error="DynamoDB error: denied")


class FailingReadStore(MemoryCommentStore):
    async def list(self, post_id):
        raise RuntimeError("socket closed")


def build_registry(store_cls=MemoryCommentStore):
    cache = MemoryNameCache()
    return CommentSessionRegistry(store_cls, lambda client_id: cache), cache


class TestCommentRoutes(unittest.TestCase):
    def test_require_client(self):
        self.assertEqual(comments.require_client(" c1 "), "c1")
        with self.assertRaises(HTTPException) as ctx:
            comments.require_client(None)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_view_requires_attachment(self):
        registry, _ = build_registry()
        with patch.object(comments, "sessions", registry):
            with self.assertRaises(HTTPException) as ctx:
                run_async(comments.ui_view("post-1", client_id="c1"))
        self.assertEqual(ctx.exception.status_code, 404)

    def test_attach_draft_submit_flow(self):
        registry, cache = build_registry()
        with patch.object(comments, "sessions", registry):
            view = run_async(comments.ui_attach("post-1", client_id="c1"))
            self.assertEqual(view.list_state.status, "loaded")
            self.assertEqual(view.list_state.count, 0)
            self.assertEqual(view.submit_state, "ready")

            view = run_async(comments.ui_update_draft("post-1", DraftPatchReq(commenter_name="Ada"), client_id="c1"))
            self.assertEqual(view.draft.commenter_name, "Ada")

            resp = run_async(comments.ui_submit("post-1", SubmitReq(content="Great read"), client_id="c1"))

        self.assertEqual(resp.outcome, "succeeded")
        self.assertIsNone(resp.error)
        self.assertEqual(resp.view.list_state.count, 1)
        self.assertEqual(resp.view.list_state.comments[0].author, "Ada")
        self.assertEqual(resp.view.draft.content, "")
        self.assertEqual([n.kind for n in resp.view.notifications], ["submit_succeeded"])
        self.assertEqual(cache.get("commenterName"), "Ada")

    def test_submit_validation_error(self):
        registry, _ = build_registry()
        with patch.object(comments, "sessions", registry):
            run_async(comments.ui_attach("post-1", client_id="c1"))
            resp = run_async(comments.ui_submit("post-1", SubmitReq(commenter_name="Ada", content=" "), client_id="c1"))
        self.assertEqual(resp.outcome, "invalid")
        self.assertEqual(resp.error.code, "EmptyContent")
        self.assertEqual(resp.error.kind, "validation")

    def test_submit_store_failure_keeps_draft(self):
        registry, _ = build_registry(FailingWriteStore)
        with patch.object(comments, "sessions", registry):
            run_async(comments.ui_attach("post-1", client_id="c1"))
            resp = run_async(comments.ui_submit("post-1", SubmitReq(commenter_name="Ada", content="Great read"), client_id="c1"))
        self.assertEqual(resp.outcome, "failed")
        self.assertEqual(resp.error.message, "DynamoDB error: denied")
        self.assertEqual(resp.view.draft.content, "Great read")
        self.assertEqual(resp.view.notifications[-1].title, "Error submitting comment")

    def test_load_failure_is_reported_in_view(self):
        registry, _ = build_registry(FailingReadStore)
        with patch.object(comments, "sessions", registry):
            view = run_async(comments.ui_attach("post-1", client_id="c1"))
        self.assertEqual(view.list_state.status, "load_failed")
        self.assertEqual(view.list_state.error.kind, "store_read")
        self.assertEqual(view.list_state.error.message, "Please try again later")
        self.assertEqual(view.notifications[0].kind, "load_failed")

    def test_refresh_and_detach(self):
        registry, _ = build_registry()
        with patch.object(comments, "sessions", registry):
            run_async(comments.ui_attach("post-1", client_id="c1"))
            view = run_async(comments.ui_refresh("post-1", client_id="c1"))
            self.assertEqual(view.list_state.status, "loaded")
            resp = run_async(comments.ui_detach("post-1", client_id="c1"))
            self.assertTrue(resp["detached"])
            self.assertEqual(run_async(comments.ui_detach("post-1", client_id="c1")), {"detached": False})


class TestCommentApp(unittest.TestCase):
    def test_http_round_trip(self):
        registry, _ = build_registry()
        headers = {"X-Client-Id": "c1"}
        with patch.object(comments, "sessions", registry):
            client = TestClient(create_app())
            self.assertEqual(client.get("/api/ping").json(), {"ok": True})
            self.assertEqual(client.post("/ui/posts/post-1/comments/attach").status_code, 401)

            resp = client.post("/ui/posts/post-1/comments/attach", headers=headers)
            self.assertEqual(resp.status_code, 200)
            self.assertEqual(resp.json()["list_state"]["status"], "loaded")

            resp = client.post(
                "/ui/posts/post-1/comments/submit",
                headers=headers,
                json={"commenterName": "Ada", "content": "Great read"},
            )
            body = resp.json()
            self.assertEqual(body["outcome"], "succeeded")
            self.assertEqual(body["view"]["list_state"]["comments"][0]["content"], "Great read")

            resp = client.get("/ui/posts/post-1/comments", headers=headers)
            self.assertEqual(resp.json()["notifications"], [])
            self.assertEqual(resp.json()["list_state"]["count"], 1)
