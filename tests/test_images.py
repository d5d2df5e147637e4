"""Tests for uploading local images and attaching them to products."""

import base64
import logging

import pytest
from PIL import Image

from conftest import FakeSwell, FakeWooExtractor, make_product
from wooswell.exceptions import ConfigurationError
from wooswell.models.record import ImageDetail
from wooswell.orchestrator import WooSwellMigrator
from wooswell.services.images import (
    ImageLinker,
    LocalImageStore,
    build_image_index,
    deserialize_image_index,
    filename_from_url,
    serialize_image_index,
)


def _write_image(path, size=(4, 3), fmt="PNG"):
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color=(200, 10, 10)).save(path, format=fmt)


@pytest.fixture
def uploads(tmp_path):
    root = tmp_path / "uploads"
    _write_image(root / "2020" / "01" / "shirt.png", size=(8, 6))
    _write_image(root / "2020" / "02" / "hat.jpg", size=(5, 5), fmt="JPEG")
    _write_image(root / "2021" / "unrelated.png")
    return root


PRODUCTS = [
    make_product(
        1,
        slug="shirt",
        images=[{"src": "https://shop.example.com/wp-content/uploads/2020/01/shirt.png", "alt": "Front"}],
    ),
    make_product(
        2,
        slug="hat",
        images=[
            {"src": "https://shop.example.com/wp-content/uploads/2020/02/hat.jpg", "alt": "", "name": "Hat"},
            {"src": "https://shop.example.com/wp-content/uploads/2020/02/missing.jpg"},
        ],
    ),
    make_product(3, slug="plain"),
]


@pytest.mark.unit
class TestImageIndex:
    def test_filename_from_url(self) -> None:
        assert filename_from_url("https://x.com/a/b/c.png") == "c.png"
        assert filename_from_url("") == ""

    def test_build_image_index(self) -> None:
        index = build_image_index(PRODUCTS)

        assert set(index) == {"shirt", "hat"}
        assert index["shirt"] == [ImageDetail(filename="shirt.png", caption="Front", product_slug="shirt")]
        assert [image.filename for image in index["hat"]] == ["hat.jpg", "missing.jpg"]
        assert index["hat"][0].name == "Hat"

    def test_serialized_index_uses_product_slug_key(self) -> None:
        data = serialize_image_index(build_image_index(PRODUCTS))

        assert data["shirt"][0]["productSlug"] == "shirt"
        assert deserialize_image_index(data) == build_image_index(PRODUCTS)


@pytest.mark.unit
class TestLocalImageStore:
    def test_missing_root(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            LocalImageStore(str(tmp_path / "missing"))

    def test_list_files_recursive(self, uploads) -> None:
        files = LocalImageStore(str(uploads)).list_files()

        assert sorted(f.filename for f in files) == ["hat.jpg", "shirt.png", "unrelated.png"]
        assert all(f.path.startswith(str(uploads.resolve())) for f in files)

    def test_dimensions_and_content_type(self, uploads) -> None:
        store = LocalImageStore(str(uploads))

        assert store.dimensions(str(uploads / "2020" / "01" / "shirt.png")) == (8, 6)
        assert store.content_type("shirt.png") == "image/png"
        assert store.content_type("hat.jpg") == "image/jpeg"


@pytest.mark.unit
class TestImageLinker:
    def setup_method(self) -> None:
        self.swell = FakeSwell()
        self.index = build_image_index(PRODUCTS)

    def _linker(self, uploads=None):
        store = LocalImageStore(str(uploads)) if uploads else None
        return ImageLinker(
            loader=self.swell,
            store=store,
            get_image_index=lambda: self.index,
            get_swell_files=lambda: list(self.swell.records(":files")),
        )

    def test_uploads_only_product_images(self, uploads) -> None:
        result = self._linker(uploads).upload_images_from_folder()

        assert result == {"uploaded": 2, "skipped": 0, "failed": 0}
        assert sorted(f["filename"] for f in self.swell.records(":files")) == ["hat.jpg", "shirt.png"]

    def test_upload_payload(self, uploads) -> None:
        self._linker(uploads).upload_images_from_folder()

        shirt = [f for f in self.swell.records(":files") if f["filename"] == "shirt.png"][0]
        assert shirt["content_type"] == "image/png"
        assert (shirt["width"], shirt["height"]) == (8, 6)
        assert shirt["data"]["$type"] == "00"
        content = (uploads / "2020" / "01" / "shirt.png").read_bytes()
        assert base64.b64decode(shirt["data"]["$binary"]) == content

    def test_skips_existing_files(self, uploads) -> None:
        self.swell.seed(":files", {"filename": "shirt.png"})

        result = self._linker(uploads).upload_images_from_folder()

        assert result == {"uploaded": 1, "skipped": 1, "failed": 0}

    def test_upload_duplicates_when_asked(self, uploads) -> None:
        self.swell.seed(":files", {"filename": "shirt.png"})

        result = self._linker(uploads).upload_images_from_folder(skip_duplicates=False)

        assert result["uploaded"] == 2

    def test_upload_requires_store(self) -> None:
        with pytest.raises(ConfigurationError):
            self._linker().upload_images_from_folder()

    def test_failed_upload_is_counted(self, uploads) -> None:
        self.swell.post = lambda endpoint, data: {"error": {"message": "Too large"}}

        result = self._linker(uploads).upload_images_from_folder()

        assert result == {"uploaded": 0, "skipped": 0, "failed": 2}

    def test_unreadable_image_is_counted_as_failed(self, uploads) -> None:
        (uploads / "2020" / "02" / "hat.jpg").write_bytes(b"not really a jpeg")

        result = self._linker(uploads).upload_images_from_folder()

        assert result == {"uploaded": 1, "skipped": 0, "failed": 1}
        assert [f["filename"] for f in self.swell.records(":files")] == ["shirt.png"]

    def test_attach_images(self, uploads) -> None:
        self.swell.seed("products", {"name": "Shirt", "slug": "shirt"}, {"name": "Hat", "slug": "hat"})
        linker = self._linker(uploads)
        linker.upload_images_from_folder()

        result = linker.attach_images_to_products()

        assert result == {"attached": 2, "missing": 0, "failed": 0}
        by_slug = {p["slug"]: p for p in self.swell.records("products")}
        assert [image["caption"] for image in by_slug["shirt"]["images"]] == ["Front"]
        assert by_slug["shirt"]["images"][0]["file"]["filename"] == "shirt.png"
        assert len(by_slug["hat"]["images"]) == 1

    def test_attach_warns_on_missing_product(self, caplog) -> None:
        self.swell.seed(":files", {"filename": "shirt.png"})

        with caplog.at_level(logging.WARNING):
            result = self._linker().attach_images_to_products()

        assert result == {"attached": 0, "missing": 1, "failed": 0}
        assert "shirt" in caplog.text


@pytest.mark.unit
class TestImageOperations:
    def test_upload_and_attach_through_migrator(self, uploads, snapshots) -> None:
        swell = FakeSwell()
        swell.seed("products", {"name": "Shirt", "slug": "shirt"})
        woo = FakeWooExtractor({"products": PRODUCTS})
        migrator = WooSwellMigrator(woo, swell, snapshots, images_dir=str(uploads))

        assert migrator.upload_images_from_folder()["uploaded"] == 2
        assert snapshots.exists("woo_images")

        woo.calls.clear()
        result = migrator.attach_images_to_products()

        assert result == {"attached": 1, "missing": 1, "failed": 0}
        assert woo.calls == []
