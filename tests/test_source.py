"""ItemSource（楽天ショップ検索・CSV 読み込み）のユニットテスト。"""
import pytest
import requests

from conftest import FakeResponse, FakeSession
from ippatrol.catalog.api_client import extract_shop_code
from ippatrol.errors import ParseError, TransportError
from ippatrol.job.source import BulkFileSource, RemoteCatalogSource
from ippatrol.util.csv_reader import read_rows, resolve_name_column

SHOP = "https://www.rakuten.co.jp/testshop/"


def _api_items(n, start=0):
    return [
        {
            "Item": {
                "itemName": f"商品{start + i}",
                "itemPrice": 1000 + i,
                "itemUrl": f"https://item.rakuten.co.jp/testshop/{start + i}/",
                "mediumImageUrls": [{"imageUrl": f"https://thumbnail.image.rakuten.co.jp/{start + i}.jpg?_ex=128x128"}],
                "shopName": "テストショップ",
                "shopUrl": SHOP,
            }
        }
        for i in range(n)
    ]


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.rakuten.co.jp/testshop/", "testshop"),
        ("https://www.rakuten.co.jp/testshop/contents/about.html", "testshop"),
        ("https://item.rakuten.co.jp/testshop/item-001/", "testshop"),
        ("https://www.rakuten.ne.jp/gold/testshop/", "testshop"),
        ("https%3A%2F%2Fwww.rakuten.co.jp%2Ftestshop%2F", "testshop"),
    ],
)
def test_extract_shop_code(url, expected):
    assert extract_shop_code(url) == expected


@pytest.mark.parametrize(
    "url",
    ["not a url", "https://www.amazon.co.jp/shop/", "https://www.rakuten.co.jp/", "https://www.rakuten.co.jp/search/"],
)
def test_extract_shop_code_rejects(url):
    with pytest.raises(ValueError):
        extract_shop_code(url)


def test_remote_page_maps_items():
    session = FakeSession([FakeResponse(200, {"Items": _api_items(30), "count": 75, "page": 1, "pageCount": 3})])
    source = RemoteCatalogSource(SHOP, "app-id", session=session)
    page = source.next_page(1)
    assert len(page.items) == 30
    assert page.has_more is True
    first = page.items[0]
    assert first.name == "商品0"
    assert first.image_url == "https://thumbnail.image.rakuten.co.jp/0.jpg"
    assert first.detail_url == "https://item.rakuten.co.jp/testshop/0/"
    assert first.source_reference == SHOP
    assert first.price == 1000
    params = session.calls[0]["params"]
    assert params["shopCode"] == "testshop"
    assert params["hits"] == 30
    assert params["page"] == 1
    assert params["imageFlag"] == 1


def test_remote_last_page_has_no_more():
    session = FakeSession([FakeResponse(200, {"Items": _api_items(15, 60), "count": 75, "page": 3, "pageCount": 3})])
    page = RemoteCatalogSource(SHOP, "app-id", session=session).next_page(3)
    assert len(page.items) == 15
    assert page.has_more is False


def test_remote_max_items_reached():
    session = FakeSession([FakeResponse(200, {"Items": _api_items(30), "count": 300, "page": 2, "pageCount": 10})])
    page = RemoteCatalogSource(SHOP, "app-id", max_items=60, session=session).next_page(2)
    assert page.has_more is False


def test_remote_empty_page():
    session = FakeSession([FakeResponse(200, {"Items": [], "count": 0, "page": 1, "pageCount": 0})])
    page = RemoteCatalogSource(SHOP, "app-id", session=session).next_page(1)
    assert page.items == []
    assert page.has_more is False


def test_remote_wrong_parameter_on_200_is_empty_page():
    session = FakeSession([FakeResponse(200, {"error": "wrong_parameter", "error_description": "page must be..."})])
    page = RemoteCatalogSource(SHOP, "app-id", session=session).next_page(101)
    assert page.items == []
    assert page.has_more is False


def test_remote_wrong_parameter_on_400_is_transport_error():
    """アプリID・ショップ不正の 400 は空ページではなく取得失敗。"""
    session = FakeSession([FakeResponse(400, {"error": "wrong_parameter", "error_description": "specify valid applicationId"})])
    with pytest.raises(TransportError) as exc:
        RemoteCatalogSource(SHOP, "bad-id", session=session).next_page(1)
    assert exc.value.status_code == 400
    assert "applicationId" in str(exc.value)


def test_remote_rate_limit_is_transport_error():
    session = FakeSession([FakeResponse(429, {"error": "too_many_requests"})])
    with pytest.raises(TransportError) as exc:
        RemoteCatalogSource(SHOP, "app-id", session=session).next_page(1)
    assert exc.value.status_code == 429
    assert len(session.calls) == 1


def test_remote_server_error_is_transport_error():
    session = FakeSession([FakeResponse(500, text="Internal Server Error")])
    with pytest.raises(TransportError) as exc:
        RemoteCatalogSource(SHOP, "app-id", session=session).next_page(1)
    assert exc.value.status_code == 500


def test_remote_network_failure_is_transport_error():
    session = FakeSession([requests.ConnectionError("dns failure")])
    with pytest.raises(TransportError):
        RemoteCatalogSource(SHOP, "app-id", session=session).next_page(1)


def test_bulk_auto_detects_name_column(tmp_path):
    path = tmp_path / "export.csv"
    path.write_bytes('商品番号,商品名,価格\n1,"ロゴ入り ""限定"" バッグ",1000\n2,マグカップ,500\n'.encode("cp932"))
    source = BulkFileSource([path])
    page = source.next_page(1)
    assert [i.name for i in page.items] == ['ロゴ入り "限定" バッグ', "マグカップ"]
    assert page.items[0].source_reference == "export.csv"
    assert page.has_more is False
    assert source.next_page(2).items == []


def test_bulk_column_by_index_and_utf8(tmp_path):
    path = tmp_path / "items.csv"
    path.write_text("code,title\nA1,Hoodie\nA2,Cap\n", encoding="utf-8-sig")
    source = BulkFileSource([path], encoding="utf-8", name_column="1")
    assert [i.name for i in source.load()] == ["Hoodie", "Cap"]


def test_bulk_missing_column_skips_file(tmp_path):
    ok = tmp_path / "ok.csv"
    ok.write_text("Name\nCap\n", encoding="utf-8")
    missing = tmp_path / "missing.csv"
    missing.write_text("code\nA1\n", encoding="utf-8")
    source = BulkFileSource([ok, missing], encoding="utf-8", name_column="Name")
    assert [i.name for i in source.load()] == ["Cap"]
    assert source.skipped_files == ["missing.csv"]


def test_bulk_header_only_file_is_empty(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("商品名\n", encoding="utf-8")
    source = BulkFileSource([path], encoding="utf-8")
    assert source.load() == []
    assert source.skipped_files == []


def test_read_rows_decode_error(tmp_path):
    path = tmp_path / "broken.csv"
    path.write_bytes(b"\xff\xfe\x00A")
    with pytest.raises(ParseError) as exc:
        read_rows(path, "utf-8")
    assert exc.value.file_name == "broken.csv"


def test_resolve_name_column_defaults_to_first():
    assert resolve_name_column(["code", "title"], None, "x.csv") == 0


def test_resolve_name_column_index_out_of_range():
    with pytest.raises(ParseError):
        resolve_name_column(["a"], 3, "x.csv")
