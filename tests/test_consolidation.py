import random

from grafibot.core.catalog.consolidation import consolidate_products, filter_active
from grafibot.core.catalog.models import RawProduct

from conftest import make_row


def raw(**kwargs) -> RawProduct:
    return RawProduct.model_validate(make_row(**kwargs))


def test_rows_sharing_code_are_merged():
    rows = [
        raw(product_id=1, name="Cartulina opalina", code="A1", stock=3, warehouse="X"),
        raw(product_id=2, name="Cartulina opalina", code="A1", stock=2, warehouse="Y"),
        raw(product_id=3, name="Cartulina opalina", code="A1", stock=1, status=0, warehouse="Z"),
    ]

    products = consolidate_products(rows)

    assert len(products) == 1
    payload = products[0].to_payload()
    assert payload["Codigo_Producto"] == "A1"
    assert payload["Existencias_Total"] == 5
    assert payload["Almacenes_Disponibles"] == ["X", "Y"]


def test_seed_row_is_lowest_warehouse_regardless_of_order():
    rows = [
        raw(product_id=20, name="Bond carta (Y)", code="B", price=12.0, stock=1, warehouse="Y"),
        raw(product_id=10, name="Bond carta (X)", code="B", price=10.0, stock=1, warehouse="X"),
    ]

    forward = consolidate_products(rows)[0]
    backward = consolidate_products(list(reversed(rows)))[0]

    assert forward == backward
    assert forward.product_id == 10
    assert forward.price == 10.0
    assert forward.warehouses == ["X", "Y"]


def test_out_of_stock_and_inactive_rows_are_dropped():
    rows = [
        raw(product_id=1, name="Sin existencias", code="S", stock=0),
        raw(product_id=2, name="Inactivo", code="I", status=0),
        raw(product_id=3, name="Disponible", code="D", stock=2),
    ]

    assert [r.code for r in filter_active(rows)] == ["D"]
    assert [p.code for p in consolidate_products(rows)] == ["D"]


def test_total_stock_is_sum_of_active_rows_per_code():
    rng = random.Random(7)
    rows = [
        raw(
            product_id=i,
            name=f"Producto {i % 6}",
            code=f"K{i % 6}",
            stock=rng.randint(0, 5),
            status=rng.choice([0, 1, 1]),
            warehouse=rng.choice(["A", "B", "C"]),
        )
        for i in range(60)
    ]

    products = consolidate_products(rows)

    for product in products:
        expected = sum(
            r.stock for r in rows
            if r.code == product.code and r.stock >= 1 and r.status == 1
        )
        assert product.total_stock == expected
        assert product.is_available
    assert len({p.code for p in products}) == len(products)


def test_raw_product_accepts_numeric_codes_and_ignores_unknown_fields():
    row = RawProduct.model_validate({
        "ID_Producto": "55",
        "Producto": "Tinta cyan",
        "Codigo_Producto": 7781,
        "Precio_Venta": "99.9",
        "Existencias": 4,
        "Estado_Producto": 1,
        "ID_Almacen": 2,
        "Proveedor": "Epson",
    })

    assert row.product_id == 55
    assert row.code == "7781"
    assert row.price == 99.9
    assert row.warehouse == "2"
