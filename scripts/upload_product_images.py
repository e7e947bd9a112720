#!/usr/bin/env python3
"""
Stage every image in a folder on an existing product (or one of its variants)
and commit them in one go, the same way the admin form does.

Usage:
    python scripts/upload_product_images.py --product <uuid> --dir ./photos --token $TOKEN
    python scripts/upload_product_images.py --product <uuid> --dir ./photos --variant 1 --feature-first
"""
import argparse
import mimetypes
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from shopadmin.adapters.catalog_api import CatalogApiError, HttpCatalogAdapter
from shopadmin.models.draft import Scope
from shopadmin.models.image import LocalFile
from shopadmin.services.edit_session_service import EditSessionService

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")


def _load_files(folder):
    files = []
    for name in sorted(os.listdir(folder)):
        if not name.lower().endswith(IMAGE_EXTENSIONS):
            continue
        with open(os.path.join(folder, name), "rb") as f:
            content = f.read()
        content_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        files.append(LocalFile(filename=name, content=content, content_type=content_type))
    return files


def main():
    parser = argparse.ArgumentParser(description="Upload a folder of images to a catalog product")
    parser.add_argument("--product", required=True, help="product uuid")
    parser.add_argument("--dir", required=True, help="folder with images")
    parser.add_argument("--variant", type=int, default=None, help="variant index (default: product images)")
    parser.add_argument("--token", default=os.environ.get("CATALOG_TOKEN"), help="bearer token (or CATALOG_TOKEN)")
    parser.add_argument("--base-url", default=None, help="catalog API base url (default from settings)")
    parser.add_argument(
        "--feature-first", action="store_true", help="make the first uploaded image the cover"
    )
    args = parser.parse_args()

    if not args.token:
        print("No token given (use --token or CATALOG_TOKEN)")
        return 1

    files = _load_files(args.dir)
    if not files:
        print(f"No images found in {args.dir}")
        return 1

    service = EditSessionService(HttpCatalogAdapter(base_url=args.base_url))
    try:
        session = service.open_session(args.product, token=args.token)
    except CatalogApiError as e:
        print(f"Could not load product {args.product}: {e}")
        return 1

    scope = Scope.product() if args.variant is None else Scope.variant(args.variant)
    existing = len(session.draft.ledger_for(scope).images)
    for f in files:
        session.mark_for_upload(scope, f)
    print(f"Staged {len(files)} image(s), committing...")

    result = session.commit(args.token)
    for notice in result.notices:
        print(f"[{notice.level.value}] {notice.message}")

    # uploads land after the images that were already there
    if args.feature_first and result.reloaded is not None and len(session.draft.ledger_for(scope).images) > existing:
        session.set_featured(scope, existing, token=args.token)
        for notice in session.notifier.drain():
            print(f"[{notice.level.value}] {notice.message}")

    return 0 if result.outcome.value == "success" else 2


if __name__ == "__main__":
    sys.exit(main())
