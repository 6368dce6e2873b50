import os
import tempfile
import unittest
from datetime import datetime
from urllib.parse import parse_qs, urlparse

from db.models import Order, OrderItem, Product
from utils.export import download_headers, export_filename, iter_csv
from utils.pure import (
    build_receipt,
    format_price,
    generate_markdown_table,
    message_link,
    product_inquiry_text,
)
from utils.uploads import resolve_image, store_upload


def sample_order():
    order = Order(
        id=7,
        cust_name="Budi",
        cust_contact="6281234567",
        address="Jl. Merdeka 1",
        payment="Transfer",
        total=42000,
        created_at="2026-10-19 08:05:03",
    )
    items = [
        OrderItem(id=1, order_id=7, product_id=1, name="Kopi", price=15000, qty=2, sub_total=30000),
        OrderItem(id=2, order_id=7, product_id=2, name="Teh", price=4000, qty=3, sub_total=12000),
    ]
    return order, items


class FormatTestCase(unittest.TestCase):
    def test_format_price(self):
        self.assertEqual(format_price(15000, "Rp"), "Rp 15.000")
        self.assertEqual(format_price(0, "Rp"), "Rp 0")
        self.assertEqual(format_price(999, "Rp"), "Rp 999")
        self.assertEqual(format_price(1234567, ""), "1.234.567")
        self.assertEqual(format_price(-2500, "Rp"), "Rp -2.500")

    def test_markdown_table(self):
        md = generate_markdown_table(["A", "B"], [[1, 2]], ["l", "r"])
        self.assertEqual(md, "| A | B |\n| :--- | ---: |\n| 1 | 2 |")
        self.assertEqual(generate_markdown_table(["A"], []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["A", "B"], [[1, 2]], ["l"])


class ReceiptTestCase(unittest.TestCase):
    def test_build_receipt(self):
        order, items = sample_order()
        receipt = build_receipt(order, items)

        self.assertEqual(receipt.order_id, 7)
        self.assertEqual(receipt.lines, ("Kopi x2 - Rp 30.000", "Teh x3 - Rp 12.000"))
        self.assertEqual(receipt.total, "Rp 42.000")
        self.assertEqual(receipt.customer.payment, "Transfer")

        text = receipt.as_text()
        self.assertTrue(text.startswith("New order #7\n"))
        self.assertIn("Total: Rp 42.000", text)
        self.assertIn("Address: Jl. Merdeka 1", text)

    def test_message_link(self):
        order, items = sample_order()
        text = build_receipt(order, items).as_text()
        link = message_link("6281909898007", text)

        parsed = urlparse(link)
        self.assertEqual(parsed.netloc, "wa.me")
        self.assertEqual(parsed.path, "/6281909898007")
        self.assertNotIn(" ", link)
        self.assertNotIn("\n", link)
        self.assertEqual(parse_qs(parsed.query)["text"], [text])

    def test_product_inquiry_link(self):
        prod = Product(
            id=3,
            name="Lemineral 1,5Lt",
            price=7000,
            image="",
            stock=99,
            created_at="2026-10-19 08:05:03",
        )
        text = product_inquiry_text(prod)
        self.assertEqual(text, "Contact us\n\nHello, I would like to order: Lemineral 1,5Lt")

        link = message_link("6281909898007", text)
        self.assertTrue(link.startswith("https://wa.me/6281909898007?text=Contact%20us%0A%0A"))
        self.assertEqual(parse_qs(urlparse(link).query)["text"], [text])


class ExportTestCase(unittest.TestCase):
    def test_filename_and_headers(self):
        now = datetime(2026, 10, 19, 8, 5, 3)
        self.assertEqual(export_filename(now), "sales_report_20261019_080503.csv")
        headers = download_headers(now)
        self.assertEqual(headers["Content-Type"], "text/csv; charset=utf-8")
        self.assertEqual(
            headers["Content-Disposition"],
            "attachment; filename=sales_report_20261019_080503.csv",
        )

    def test_iter_csv_yields_line_per_order(self):
        order, _ = sample_order()
        chunks = list(iter_csv([order, order]))
        self.assertEqual(len(chunks), 3)
        self.assertTrue(chunks[0].startswith("Order ID,Date,Name"))
        self.assertTrue(chunks[1].startswith("7,2026-10-19 08:05:03,Budi,"))


class UploadTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.upload_dir = os.path.join(self.temp_dir.name, "uploads")

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_store_upload_copies_under_new_name(self):
        src = os.path.join(self.temp_dir.name, "Photo.JPG")
        with open(src, "wb") as f:
            f.write(b"not really a jpeg")

        stored = store_upload(src, self.upload_dir)
        self.assertTrue(os.path.basename(stored).startswith("p_"))
        self.assertTrue(stored.endswith(".jpg"))
        with open(stored, "rb") as f:
            self.assertEqual(f.read(), b"not really a jpeg")
        self.assertNotEqual(stored, store_upload(src, self.upload_dir))

    def test_resolve_image_keeps_uris(self):
        url = "https://example.com/a.png"
        self.assertEqual(resolve_image(f"  {url} ", self.upload_dir), url)
        self.assertEqual(resolve_image("", self.upload_dir), "")
        self.assertEqual(resolve_image("missing/file.png", self.upload_dir), "missing/file.png")
        self.assertFalse(os.path.exists(self.upload_dir))


if __name__ == "__main__":
    unittest.main()
