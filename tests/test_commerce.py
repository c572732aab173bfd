"""Tests for catalog search, carts, checkout and orders."""

import pytest

from saai.adapters import commerce_adapter
from saai.adapters.commerce_adapter import detect_category, detect_colors, extract_price_filters, search_catalog
from saai.models.tenant import TenantConfig
from saai.services import cart_service, order_service
from saai.services.product_catalog import get_product_by_id, get_products_by_tags, load_products_for_tenant
from saai.tenants import example_adapter


@pytest.fixture
def catalog():
    return load_products_for_tenant("example")


def _ids(products):
    return [p["id"] for p in products]


class TestProductCatalog:
    """JSON catalogs with the example fallback."""

    def test_example_catalog(self, catalog):
        assert len(catalog) == 16
        assert catalog[0]["id"] == "p101"

    def test_unknown_tenant_falls_back(self, catalog):
        assert load_products_for_tenant("no-such-shop") == catalog

    def test_tenant_id_sanitized(self, catalog):
        assert load_products_for_tenant("../../etc") == catalog

    def test_missing_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        assert load_products_for_tenant("example") == []

    def test_lookups(self):
        assert get_product_by_id("example", "p105")["name"] == "Brown Leather Oxford Shoes"
        assert get_product_by_id("example", "nope") is None
        assert "p116" in _ids(get_products_by_tags("example", ["gift"]))


class TestSearch:
    """Filter extraction and ranking."""

    def test_price_filters(self):
        assert extract_price_filters("shirts under 2500") == (None, 2500)
        assert extract_price_filters("shoes above ₹3,000") == (3000, None)
        assert extract_price_filters("between 1000 and 2000") == (1000, 2000)
        assert extract_price_filters("1000-2000") == (1000, 2000)
        assert extract_price_filters("blue shirt") == (None, None)

    def test_category_and_colors(self):
        assert detect_category("black shoes") == "shoes"
        assert detect_category("linen shirts") == "shirts"
        assert detect_category("something nice") is None
        assert detect_colors("black and navy shirts") == ["black", "navy"]

    def test_category_with_max_price(self, catalog):
        results, filter_info, clean_query = search_catalog(catalog, "shirts under 2500")

        assert _ids(results) == ["p101", "p109", "p112"]
        assert filter_info == ["under ₹2500", "in shirts"]
        assert clean_query == "shirts"

    def test_color_filter(self, catalog):
        results, _, _ = search_catalog(catalog, "black shoes")
        assert _ids(results) == ["p114"]

    def test_price_range(self, catalog):
        results, _, _ = search_catalog(catalog, "between 1000 and 2000")
        assert set(_ids(results)) == {"p103", "p106", "p113", "p115"}

    def test_no_match(self, catalog):
        results, filter_info, _ = search_catalog(catalog, "zzqqxx")
        assert results == []
        assert filter_info == []

    def test_limit(self, catalog):
        results, _, _ = search_catalog(catalog, "under 10000", limit=4)
        assert len(results) == 4

    @pytest.mark.asyncio
    async def test_search_handler(self, default_tenant):
        result = await commerce_adapter.search({"query": "shirts under 2500"}, default_tenant)

        assert result["type"] == "search"
        assert result["totalFound"] == 3
        assert result["message"] == 'Found 3 products matching "shirts" (under ₹2500, in shirts)'

    @pytest.mark.asyncio
    async def test_example_search_adds_premium_picks(self, example_tenant):
        result = await example_adapter.search({"query": "shirts under 2500"}, example_tenant)

        assert result["override"] is True
        assert _ids(result["results"])[:2] == ["premium-001", "premium-002"]
        assert result["totalFound"] == 5


class TestCompare:
    """Side-by-side comparison."""

    @pytest.mark.asyncio
    async def test_by_ids(self, default_tenant):
        result = await commerce_adapter.compare({"productIds": ["p101", "p102"]}, default_tenant)

        assert result["success"] is True
        assert _ids(result["products"]) == ["p101", "p102"]
        assert result["comparison"]["cheapest"] == "p101"
        assert result["comparison"]["mostExpensive"] == "p102"

    @pytest.mark.asyncio
    async def test_by_names(self, default_tenant):
        result = await commerce_adapter.compare({"productNames": ["white canvas", "oxford shoes"]}, default_tenant)
        assert _ids(result["products"]) == ["p106", "p105"]

    @pytest.mark.asyncio
    async def test_needs_two(self, default_tenant):
        result = await commerce_adapter.compare({"productIds": ["p101"]}, default_tenant)
        assert result["success"] is False
        assert result["message"] == "I need at least two products to compare."


class TestCart:
    """In-memory carts keyed by tenant and session."""

    def test_add_and_increment(self):
        cart_service.add_to_cart("example", "s1", "p101")
        result = cart_service.add_to_cart("example", "s1", "p101", 2)

        assert result["success"] is True
        assert result["cart"]["items"][0]["quantity"] == 3
        assert result["summary"] == {"totalItems": 3, "totalAmount": 7497}
        assert result["addedProduct"]["name"] == "Classic White Shirt"

    def test_bad_quantity_becomes_one(self):
        cart_service.add_to_cart("example", "s1", "p101", "abc")
        cart_service.add_to_cart("example", "s1", "p103", 0)
        items = cart_service.get_cart("example", "s1")["items"]
        assert [i["quantity"] for i in items] == [1, 1]

    def test_unknown_product(self):
        result = cart_service.add_to_cart("example", "s1", "p999")
        assert result["success"] is False
        assert result["message"] == "Product p999 not found in catalog."
        assert result["cart"]["items"] == []

    def test_carts_isolated(self):
        cart_service.add_to_cart("example", "s1", "p101")
        assert cart_service.get_cart("example", "s2")["items"] == []
        assert cart_service.get_cart("default", "s1")["items"] == []

    def test_result_cart_is_a_copy(self):
        result = cart_service.add_to_cart("example", "s1", "p101")
        result["cart"]["items"].clear()
        assert len(cart_service.get_cart("example", "s1")["items"]) == 1

    def test_outfit(self):
        result = cart_service.add_outfit_to_cart("example", "s1", ["p101", "p104", "p999"])

        assert result["success"] is True
        assert _ids(result["addedItems"]) == ["p101", "p104"]
        assert result["missing"] == ["p999"]

    def test_remove(self):
        cart_service.add_to_cart("example", "s1", "p101")

        assert cart_service.remove_from_cart("example", "s1", "p103")["success"] is False
        result = cart_service.remove_from_cart("example", "s1", "p101")
        assert result["success"] is True
        assert result["message"] == "Removed Classic White Shirt from your cart."
        assert result["summary"]["totalItems"] == 0

    def test_view(self):
        assert cart_service.view_cart("example", "s1")["message"].startswith("Your cart is empty")

        cart_service.add_to_cart("example", "s1", "p103", 2)
        result = cart_service.view_cart("example", "s1")
        assert "Slim Fit Chinos (x2) - ₹3798.00" in result["message"]


class TestCheckoutAndOrders:
    """Checkout creates orders; orders can be viewed and cancelled."""

    def test_empty_cart(self):
        result = cart_service.checkout_cart("example", "s1")
        assert result["success"] is False
        assert result["order"] is None

    def test_checkout_creates_order_and_clears_cart(self):
        cart_service.add_to_cart("default", "s1", "p101")
        result = cart_service.checkout_cart("default", "s1", "UPI")

        order = result["order"]
        assert result["success"] is True
        assert order["orderId"].startswith("ORD-")
        assert order["status"] == "CONFIRMED"
        assert order["paymentMethod"] == "UPI"
        assert order["items"][0]["subtotal"] == 2499
        assert cart_service.get_cart("default", "s1")["items"] == []

        orders = order_service.get_orders("default", "s1")["orders"]
        assert _ids([{"id": o["orderId"]} for o in orders]) == [order["orderId"]]

    @pytest.mark.asyncio
    async def test_example_discount_checkout(self, example_tenant):
        cart_service.add_to_cart("example", "s1", "p103", 2)
        result = await example_adapter.checkout({"sessionId": "s1"}, example_tenant)

        summary = result["order"]["summary"]
        assert summary["subtotal"] == 3798
        assert summary["discount"] == 379.8
        assert summary["totalAmount"] == 3418.2
        assert result["order"]["special"] == "Example tenant receives 10% discount!"

    def test_seeded_orders_newest_first(self):
        orders = order_service.get_orders("example", "demo-session")["orders"]
        assert [o["orderId"] for o in orders] == ["ORD-1715518500", "ORD-1715432100"]

    def test_no_orders(self):
        result = order_service.get_orders("default", "s9")
        assert result["orders"] == []
        assert result["message"] == "You have no orders yet."

    def test_order_status(self):
        result = order_service.get_order_status("example", "ORD-1715432100")
        assert result["message"] == "Order ORD-1715432100 is currently DELIVERED."
        assert order_service.get_order_status("default", "ORD-1715432100")["success"] is False

    def test_delivered_order_cannot_be_cancelled(self):
        result = order_service.cancel_order("example", "ORD-1715432100")
        assert result["success"] is False
        assert result["message"] == "Cannot cancel order ORD-1715432100 because it is already DELIVERED."

    def test_cancel_processing_order(self):
        result = order_service.cancel_order("example", "ORD-1715518500", "changed my mind")

        assert result["success"] is True
        assert result["order"]["status"] == "CANCELLED"
        assert result["order"]["cancellationReason"] == "changed my mind"
        assert order_service.cancel_order("example", "ORD-1715518500")["success"] is False

    @pytest.mark.asyncio
    async def test_order_handlers_need_order_id(self):
        tenant = TenantConfig(tenant_id="example", effective_id="example")
        with pytest.raises(ValueError, match="orderId"):
            await commerce_adapter.cancel_order({}, tenant)
