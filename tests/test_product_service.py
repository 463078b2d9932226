from decimal import Decimal

import pytest

from storefront.domain.errors import ValidationError
from storefront.services.product_service import ADMIN_PRODUCTS_PATH, ProductService


@pytest.fixture
def svc(db, revalidator):
    return ProductService(db=db, revalidation_service=revalidator)


def _product_in(**overrides):
    data = {
        "name": "Denim Jacket",
        "slug": "denim-jacket",
        "category": "Jackets",
        "brand": "Levis",
        "description": "Blue denim jacket",
        "stock": "7",
        "images": ["/images/j1.jpg"],
        "is_featured": False,
        "price": "59.90",
    }
    data.update(overrides)
    return data


class TestCatalogueQueries:
    def test_latest_is_limited_and_newest_first(self, svc, make_product):
        made = [make_product() for _ in range(6)]

        latest = svc.get_latest_products()

        assert [p.id for p in latest] == [p.id for p in reversed(made)][:4]

    def test_featured(self, svc, make_product):
        featured = make_product(is_featured=True)
        make_product()

        assert [p.id for p in svc.get_featured_products()] == [featured.id]

    def test_by_slug_and_id(self, svc, make_product):
        product = make_product()

        assert svc.get_product_by_slug(product.slug).id == product.id
        assert svc.get_product_by_id(product.id).slug == product.slug
        assert svc.get_product_by_slug("nope") is None
        assert svc.get_product_by_id("nope") is None

    def test_categories_are_counted(self, svc, make_product):
        make_product(category="Jackets")
        make_product(category="Jackets")
        make_product(category="Shirts")

        counts = {c.category: c.count for c in svc.get_all_categories()}

        assert counts == {"Jackets": 2, "Shirts": 1}


class TestGetAllProducts:
    def test_search_is_case_insensitive(self, svc, make_product):
        match = make_product(name="Red Hoodie")
        make_product(name="Blue Jeans", description="denim")

        page = svc.get_all_products(query="hoodie")

        assert [p.id for p in page.data] == [match.id]

    def test_wildcard_characters_are_literal(self, svc, make_product):
        make_product(name="Red Hoodie")
        make_product(name="Blue Jeans")
        sale = make_product(name="Tee 50% off")

        assert svc.get_all_products(query="_").data == []
        assert [p.id for p in svc.get_all_products(query="%").data] == [sale.id]
        assert [p.id for p in svc.get_all_products(query="50%").data] == [sale.id]

    def test_all_means_no_filter(self, svc, make_product):
        make_product()
        make_product()

        page = svc.get_all_products(query="all", category="all", price="all", rating="all")

        assert len(page.data) == 2

    def test_filters(self, svc, make_product):
        cheap = make_product(category="Shirts", price=Decimal("15.00"), rating=Decimal("4.50"))
        make_product(category="Shirts", price=Decimal("80.00"), rating=Decimal("4.80"))
        make_product(category="Jackets", price=Decimal("20.00"), rating=Decimal("5.00"))

        page = svc.get_all_products(category="Shirts", price="1-50", rating="4")

        assert [p.id for p in page.data] == [cheap.id]

    def test_sort_by_price(self, svc, make_product):
        a = make_product(price=Decimal("30.00"))
        b = make_product(price=Decimal("10.00"))
        c = make_product(price=Decimal("20.00"))

        assert [p.id for p in svc.get_all_products(sort="lowest").data] == [b.id, c.id, a.id]
        assert [p.id for p in svc.get_all_products(sort="highest").data] == [a.id, c.id, b.id]

    def test_pagination(self, svc, make_product):
        for _ in range(5):
            make_product()

        first = svc.get_all_products(page=1, limit=2)
        last = svc.get_all_products(page=3, limit=2)

        assert first.total_pages == 3
        assert len(first.data) == 2
        assert len(last.data) == 1

    def test_bad_price_range(self, svc):
        with pytest.raises(ValidationError):
            svc.get_all_products(price="cheap")


class TestProductAdmin:
    def test_create(self, svc, revalidator):
        result = svc.create_product(_product_in())

        assert result.success is True
        assert result.message == "Product was successfully created"
        product = svc.get_product_by_slug("denim-jacket")
        assert product.stock == 7
        assert product.price == Decimal("59.90")
        assert product.rating == 0
        assert revalidator.paths == [ADMIN_PRODUCTS_PATH]

    def test_create_validation_messages(self, svc):
        result = svc.create_product(_product_in(name="ab", images=[]))

        assert result.success is False
        assert result.error == "ValidationError"
        assert result.message == "Name must have atleast three characters. Product must at least have one image"

    def test_duplicate_slug_is_a_conflict(self, svc):
        svc.create_product(_product_in())

        result = svc.create_product(_product_in(name="Another jacket"))

        assert result.success is False
        assert result.error == "ConflictError"

    def test_update(self, svc, make_product):
        product = make_product()

        result = svc.update_product(_product_in(id=product.id, slug=product.slug, price="49.00"))

        assert result.success is True
        assert result.message == "Product was successfully updated"
        updated = svc.get_product_by_id(product.id)
        assert updated.name == "Denim Jacket"
        assert updated.price == Decimal("49.00")

    def test_update_unknown(self, svc):
        result = svc.update_product(_product_in(id="missing"))

        assert result.error == "NotFound"
        assert result.message == "Product not found"

    def test_delete(self, svc, make_product):
        product = make_product()

        result = svc.delete_product(product.id)

        assert result.success is True
        assert result.message == "Product was successfully deleted"
        assert svc.get_product_by_id(product.id) is None

    def test_delete_unknown(self, svc):
        assert svc.delete_product("missing").error == "NotFound"
