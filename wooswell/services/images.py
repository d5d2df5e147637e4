"""Uploading local product images to Swell and attaching them to products."""

import base64
import logging
import mimetypes
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..exceptions import ConfigurationError
from ..loaders.base import BaseLoader
from ..models.record import ImageDetail, LocalFile, error_message

logger = logging.getLogger(__name__)


class LocalImageStore:
    """Read access to a local image backup (e.g. a WordPress uploads folder)."""

    def __init__(self, root: str):
        self.root = Path(root)
        if not self.root.is_dir():
            raise ConfigurationError(f"Image directory path {root} doesn't exist.")

    def list_files(self) -> List[LocalFile]:
        """Recursively list every file under the root."""
        files = []
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for filename in sorted(filenames):
                files.append(LocalFile(filename=filename, path=str(Path(dirpath, filename).resolve())))
        return files

    def read(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def dimensions(self, path: str) -> Tuple[int, int]:
        """Get (width, height) of an image file."""
        with Image.open(path) as img:
            return img.size

    def content_type(self, filename: str) -> Optional[str]:
        return mimetypes.guess_type(filename)[0]


def filename_from_url(url: str) -> str:
    """Get the last path segment of an image URL."""
    return url[url.rfind("/") + 1:] if url else ""


def build_image_index(products: Iterable[Mapping[str, Any]]) -> Dict[str, List[ImageDetail]]:
    """
    Group product images by product slug.

    Returns:
        ``{product_slug: [ImageDetail, ...]}`` for products that have images
    """
    index: Dict[str, List[ImageDetail]] = {}
    for product in products:
        images = product.get("images") or []
        slug = product.get("slug")
        if not images or not slug:
            continue
        index[slug] = [
            ImageDetail(
                filename=filename_from_url(image.get("src", "")),
                caption=image.get("alt") or "",
                name=image.get("name") or "",
                product_slug=slug,
            )
            for image in images
        ]
    return index


def serialize_image_index(index: Dict[str, List[ImageDetail]]) -> Dict[str, List[Dict[str, Any]]]:
    return {slug: [image.to_dict() for image in images] for slug, images in index.items()}


def deserialize_image_index(data: Dict[str, List[Dict[str, Any]]]) -> Dict[str, List[ImageDetail]]:
    return {slug: [ImageDetail.from_dict(image) for image in images] for slug, images in data.items()}


class ImageLinker:
    """
    Two-phase image migration.

    First uploads every local file that belongs to a source product, then
    attaches the uploaded files to the matching target products by slug.
    """

    def __init__(
        self,
        loader: BaseLoader,
        store: Optional[LocalImageStore],
        get_image_index: Callable[[], Dict[str, List[ImageDetail]]],
        get_swell_files: Callable[[], List[Dict[str, Any]]]
    ):
        """
        Initialize the image linker.

        Args:
            loader: Target client
            store: Local image store (only needed for uploads)
            get_image_index: Returns the product slug -> images index
            get_swell_files: Returns the current list of uploaded Swell files
        """
        self.loader = loader
        self.store = store
        self.get_image_index = get_image_index
        self.get_swell_files = get_swell_files

    def upload_image(self, local_file: LocalFile) -> Dict[str, Any]:
        """Upload a single local file to Swell."""
        content = self.store.read(local_file.path)
        width, height = self.store.dimensions(local_file.path)

        return self.loader.post("/:files", {
            "data": {
                "$binary": base64.b64encode(content).decode("ascii"),
                "$type": "00",
            },
            "filename": local_file.filename,
            "content_type": self.store.content_type(local_file.filename),
            "width": width,
            "height": height,
        })

    def upload_images_from_folder(self, skip_duplicates: bool = True) -> Dict[str, int]:
        """
        Upload local images that belong to a source product.

        Files in the folder that no product references are ignored, so the
        folder does not need to be pre-filtered.

        Args:
            skip_duplicates: Skip files whose filename already exists in Swell

        Returns:
            Counts of uploaded, skipped (already present) and failed files
        """
        if self.store is None:
            raise ConfigurationError("An image directory is required to upload images")

        count = {"uploaded": 0, "skipped": 0, "failed": 0}

        image_index = self.get_image_index()
        product_filenames = {image.filename for images in image_index.values() for image in images}

        existing_filenames = set()
        if skip_duplicates:
            existing_filenames = {f["filename"] for f in self.get_swell_files() if f.get("filename")}

        logger.info("Getting local file index (takes a while depending on folder size)")
        local_files = self.store.list_files()

        logger.info("Uploading files")
        for local_file in local_files:
            if local_file.filename not in product_filenames:
                continue
            if local_file.filename in existing_filenames:
                count["skipped"] += 1
                continue

            try:
                response = self.upload_image(local_file)
            except (OSError, UnidentifiedImageError) as e:
                count["failed"] += 1
                logger.error(f"Cannot read {local_file.path}: {e}")
                continue

            message = error_message(response)
            if message:
                count["failed"] += 1
                logger.error(f"Error uploading {local_file.filename}: {message}")
                continue

            # Same filename may exist in several upload folders
            existing_filenames.add(local_file.filename)
            count["uploaded"] += 1
            logger.debug(f"File {local_file.filename} uploaded")

        logger.info(f"{count['uploaded']} files uploaded, {count['skipped']} already present")
        return count

    def attach_images_to_products(self) -> Dict[str, int]:
        """
        Attach uploaded files to their products.

        Products are matched by slug; a product missing from Swell is
        skipped with a warning.

        Returns:
            Counts of attached, missing and failed products
        """
        count = {"attached": 0, "missing": 0, "failed": 0}

        image_index = self.get_image_index()
        files = {f["filename"]: f for f in self.get_swell_files() if f.get("filename")}

        for slug, images in image_index.items():
            image_list = [
                {"caption": image.caption, "file": files[image.filename]}
                for image in images
                if image.filename in files
            ]
            if not image_list:
                continue

            response = self.loader.get("/products", {"where": {"slug": slug}, "limit": 1})
            results = (response or {}).get("results") or []
            if not results:
                count["missing"] += 1
                logger.warning(f"Product slug {slug} not found, can't attach images")
                continue

            product = results[0]
            response = self.loader.put(f"/products/{product['id']}", {"$set": {"images": image_list}})

            message = error_message(response)
            if message:
                count["failed"] += 1
                logger.error(f"Error attaching images to {slug}: {message}")
                continue

            count["attached"] += 1
            logger.debug(f"Attached {len(image_list)} images to {product.get('name', slug)}")

        return count
