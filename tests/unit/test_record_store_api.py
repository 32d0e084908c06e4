import unittest

from src.core import config
from src.core.models import Category, Offer
from src.core.record_store_api import (
    RecordStoreAPI,
    RecordStoreAPIError,
    RecordStoreNetworkError,
)
from tests.unit.fake_living_apps import FakeLivingApps

CATEGORIES = config.APP_IDS["KATEGORIEN"]
OFFERS = config.APP_IDS["MARKTPLATZ_ANGEBOTE"]


class TestRecordStoreAPI(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeLivingApps()
        base_url = await self.backend.start()
        self.api = RecordStoreAPI(base_url=base_url, cookies={"sid": "secret-session"})

    async def asyncTearDown(self):
        await self.api.close()
        await self.backend.close()

    async def test_get_all_reshapes_keyed_object(self):
        rid = self.backend.add(CATEGORIES, {"kategoriename": "Schuhe"}, createdat="2025-02-20T12:00:00")

        categories = await self.api.categories.get_all()

        self.assertEqual(len(categories), 1)
        self.assertIsInstance(categories[0], Category)
        self.assertEqual(categories[0].record_id, rid)
        self.assertEqual(categories[0].name, "Schuhe")
        self.assertEqual(categories[0].createdat, "2025-02-20T12:00:00")

    async def test_get_all_empty_collection(self):
        self.assertEqual(await self.api.offers.get_all(), [])

    async def test_get_single_record(self):
        rid = self.backend.add(OFFERS, {"hersteller": "Nike", "preis": 89.99})

        offer = await self.api.offers.get(rid)

        self.assertIsInstance(offer, Offer)
        self.assertEqual(offer.record_id, rid)
        self.assertEqual(offer.price, 89.99)

    async def test_create_wraps_fields_and_drops_none(self):
        await self.api.offers.create({"hersteller": "Nike", "modell": None, "preis": 10.0})

        request = self.backend.requests[-1]
        self.assertEqual(request["method"], "POST")
        self.assertEqual(request["path"], f"/apps/{OFFERS}/records")
        self.assertEqual(request["body"], {"fields": {"hersteller": "Nike", "preis": 10.0}})
        self.assertEqual(len(self.backend.records[OFFERS]), 1)

    async def test_update_is_partial_patch(self):
        rid = self.backend.add(OFFERS, {"hersteller": "Nike", "farbe": "rot"})

        await self.api.offers.update(rid, {"farbe": "blau"})

        request = self.backend.requests[-1]
        self.assertEqual(request["method"], "PATCH")
        self.assertEqual(request["body"], {"fields": {"farbe": "blau"}})
        self.assertEqual(self.backend.records[OFFERS][rid]["fields"], {"hersteller": "Nike", "farbe": "blau"})

    async def test_delete_returns_true_on_empty_body(self):
        rid = self.backend.add(CATEGORIES, {"kategoriename": "Jacken"})

        self.assertTrue(await self.api.categories.delete(rid))
        self.assertNotIn(rid, self.backend.records[CATEGORIES])

    async def test_non_2xx_raises_with_raw_body(self):
        self.backend.fail["POST"] = (403, "Keine Berechtigung")

        with self.assertRaises(RecordStoreAPIError) as ctx:
            await self.api.categories.create({"kategoriename": "X"})

        self.assertEqual(str(ctx.exception), "Keine Berechtigung")
        self.assertEqual(ctx.exception.status, 403)

    async def test_non_2xx_with_empty_body_names_status(self):
        self.backend.fail["GET"] = (500, "")

        with self.assertRaises(RecordStoreAPIError) as ctx:
            await self.api.offers.get_all()

        self.assertEqual(str(ctx.exception), "HTTP 500")

    async def test_missing_record_raises(self):
        with self.assertRaises(RecordStoreAPIError) as ctx:
            await self.api.offers.delete("abcdef0123456789abcdef01")
        self.assertEqual(ctx.exception.status, 404)

    async def test_session_cookie_is_sent(self):
        await self.api.offers.get_all()
        self.assertEqual(self.backend.requests[-1]["cookies"].get("sid"), "secret-session")

    async def test_request_count(self):
        await self.api.offers.get_all()
        await self.api.categories.get_all()
        self.assertEqual(self.api.get_request_count(), 2)

    async def test_non_utf8_body_raises_api_error(self):
        self.backend.fail[("GET", OFFERS)] = (200, b'{"hersteller": "\xff"}')

        with self.assertRaises(RecordStoreAPIError) as ctx:
            await self.api.offers.get_all()

        self.assertEqual(ctx.exception.status, 200)

    async def test_malformed_fields_raise_api_error(self):
        rid = "a" * 24
        self.backend.records[OFFERS] = {rid: {"id": rid, "fields": ["kein", "objekt"]}}

        with self.assertRaises(RecordStoreAPIError):
            await self.api.offers.get_all()
        with self.assertRaises(RecordStoreAPIError):
            await self.api.offers.get(rid)

    async def test_non_object_record_raises_api_error(self):
        self.backend.records[CATEGORIES] = {"a" * 24: "Schuhe"}

        with self.assertRaises(RecordStoreAPIError):
            await self.api.categories.get_all()

    async def test_download(self):
        self.backend.files["foto.png"] = b"\x89PNG"

        data = await self.api.download(f"{self.api.base_url}/files/foto.png")

        self.assertEqual(data, b"\x89PNG")
        with self.assertRaises(RecordStoreAPIError) as ctx:
            await self.api.download(f"{self.api.base_url}/files/fehlt.png")
        self.assertEqual(ctx.exception.status, 404)

    def test_record_url_uses_collection_app_id(self):
        url = self.api.categories.record_url("abcdef0123456789abcdef01")
        self.assertTrue(url.endswith(f"/apps/{CATEGORIES}/records/abcdef0123456789abcdef01"))


class TestRecordStoreNetworkErrors(unittest.IsolatedAsyncioTestCase):
    async def test_unreachable_host_raises_network_error(self):
        # Port 9 (discard) on localhost is expected to refuse connections
        async with RecordStoreAPI(base_url="http://127.0.0.1:9") as api:
            with self.assertRaises(RecordStoreNetworkError):
                await api.offers.get_all()

    async def test_network_error_is_an_api_error(self):
        self.assertTrue(issubclass(RecordStoreNetworkError, RecordStoreAPIError))


if __name__ == '__main__':
    unittest.main()
