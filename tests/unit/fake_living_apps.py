"""In-process fake of the Living Apps record REST surface for tests."""

import uuid
from datetime import datetime, timezone

from aiohttp import web
from aiohttp.test_utils import TestServer


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


def new_record_id() -> str:
    return uuid.uuid4().hex[:24]


class FakeLivingApps:
    """
    Minimal record store keyed by app id.

    ``fail`` maps ``(method, app_id)``, a bare method, or "*" to
    ``(status, body)``; matching requests get that canned reply instead of
    being served. A bytes body is sent as-is with a JSON content type.
    """

    def __init__(self):
        self.records = {}
        self.requests = []
        self.fail = {}
        self.files = {}
        self.server = None

        app = web.Application()
        app.router.add_route("*", "/apps/{app_id}/records", self._collection)
        app.router.add_route("*", "/apps/{app_id}/records/{record_id}", self._record)
        app.router.add_get("/files/{name}", self._file)
        self.app = app

    async def start(self) -> str:
        self.server = TestServer(self.app)
        await self.server.start_server()
        return str(self.server.make_url("")).rstrip("/")

    async def close(self):
        if self.server is not None:
            await self.server.close()

    def add(self, app_id: str, fields: dict, createdat: str = None, record_id: str = None) -> str:
        record_id = record_id or new_record_id()
        self.records.setdefault(app_id, {})[record_id] = {
            "id": record_id,
            "createdat": createdat or _now(),
            "updatedat": None,
            "fields": dict(fields),
        }
        return record_id

    def _failure(self, request):
        method = request.method
        app_id = request.match_info.get("app_id")
        configured = self.fail.get((method, app_id)) or self.fail.get(method) or self.fail.get("*")
        if configured is None:
            return None
        status, body = configured
        if isinstance(body, bytes):
            return web.Response(status=status, body=body, content_type="application/json")
        return web.Response(status=status, text=body)

    async def _file(self, request):
        name = request.match_info["name"]
        if name not in self.files:
            return web.Response(status=404, text="No such file")
        return web.Response(body=self.files[name], content_type="image/png")

    async def _log(self, request):
        body = None
        if request.can_read_body:
            body = await request.json()
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "body": body,
            "cookies": dict(request.cookies),
        })

    async def _collection(self, request):
        await self._log(request)
        failure = self._failure(request)
        if failure is not None:
            return failure

        app_id = request.match_info["app_id"]
        store = self.records.setdefault(app_id, {})
        if request.method == "GET":
            return web.json_response(store)
        if request.method == "POST":
            fields = self.requests[-1]["body"]["fields"]
            record_id = self.add(app_id, fields)
            return web.json_response(store[record_id])
        return web.Response(status=405)

    async def _record(self, request):
        await self._log(request)
        failure = self._failure(request)
        if failure is not None:
            return failure

        store = self.records.setdefault(request.match_info["app_id"], {})
        record_id = request.match_info["record_id"]
        if record_id not in store:
            return web.Response(status=404, text="Record not found")

        if request.method == "GET":
            return web.json_response(store[record_id])
        if request.method == "PATCH":
            store[record_id]["fields"].update(self.requests[-1]["body"]["fields"])
            store[record_id]["updatedat"] = _now()
            return web.json_response(store[record_id])
        if request.method == "DELETE":
            del store[record_id]
            return web.Response(status=200)
        return web.Response(status=405)
