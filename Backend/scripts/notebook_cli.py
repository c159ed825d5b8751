#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Notebook CLI: work with the offline location notebook (JSON file)
- list / add / update / delete locations
- attach and remove photos (stored inline)
- export / import / clear the whole notebook
- resolve missing addresses through the reverse-geocoding providers

Exit codes: 0 ok, 1 not found / rejected input, 2 usage error.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

# Add Backend to path for imports
BACKEND_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from fastapi import HTTPException  # noqa: E402

from app.core.geo import apple_maps_url, google_maps_url, parse_point  # noqa: E402
from app.core.logging import configure_logging  # noqa: E402
from services.geocoding_service import ReverseGeocodingService  # noqa: E402
from services.offline_notebook_service import DEFAULT_NOTEBOOK_FILE, OfflineNotebook  # noqa: E402


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Offline location notebook")
    ap.add_argument(
        "--file",
        default=DEFAULT_NOTEBOOK_FILE,
        help=f"Notebook JSON file (default: {DEFAULT_NOTEBOOK_FILE})",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List locations (newest first)")
    p_list.add_argument("--near", help="lat,lng: sort by distance from this point")

    p_add = sub.add_parser("add", help="Add a location")
    p_add.add_argument("name")
    p_add.add_argument("lat", type=float)
    p_add.add_argument("lng", type=float)
    p_add.add_argument("--description", default="")
    p_add.add_argument("--resolve-address", action="store_true", help="Look up the address now")

    p_update = sub.add_parser("update", help="Update a location")
    p_update.add_argument("id")
    p_update.add_argument("--name")
    p_update.add_argument("--lat", type=float)
    p_update.add_argument("--lng", type=float)
    p_update.add_argument("--description")

    p_delete = sub.add_parser("delete", help="Delete a location")
    p_delete.add_argument("id")

    p_photo = sub.add_parser("add-photo", help="Attach an image file to a location")
    p_photo.add_argument("id")
    p_photo.add_argument("image", type=Path)

    p_del_photo = sub.add_parser("delete-photo", help="Remove a photo from a location")
    p_del_photo.add_argument("id")
    p_del_photo.add_argument("photo_id")

    p_export = sub.add_parser("export", help="Write the notebook as JSON")
    p_export.add_argument("--out", type=Path, help="Output file (default: stdout)")

    p_import = sub.add_parser("import", help="Replace the notebook with a JSON export")
    p_import.add_argument("source", type=Path)

    sub.add_parser("clear", help="Remove every location")
    sub.add_parser("resolve-addresses", help="Fill in missing addresses")

    return ap.parse_args(argv)


def _print_entry(entry, distance_label: Optional[str] = None) -> None:
    suffix = f"  [{distance_label}]" if distance_label else ""
    print(f"{entry.id}  {entry.name}  ({entry.latitude:.6f}, {entry.longitude:.6f}){suffix}")
    if entry.address:
        print(f"    {entry.address}")
    if entry.description:
        print(f"    {entry.description}")
    if entry.photos:
        print(f"    photos: {len(entry.photos)}")
    print(f"    {google_maps_url(entry.latitude, entry.longitude)}  {apple_maps_url(entry.latitude, entry.longitude)}")


async def _resolve(notebook: OfflineNotebook) -> int:
    async with ReverseGeocodingService() as geocoder:
        return await notebook.fill_missing_addresses(geocoder)


async def main_async(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    notebook = OfflineNotebook(args.file)

    if args.command == "list":
        if args.near:
            try:
                origin = parse_point(args.near)
            except HTTPException:
                print("--near must be lat,lng with valid coordinates", file=sys.stderr)
                return 2
            for entry, _, label in notebook.distances_from(*origin):
                _print_entry(entry, label)
        else:
            for entry in notebook.locations():
                _print_entry(entry)
        return 0

    if args.command == "add":
        try:
            entry = notebook.add_location(args.name, args.lat, args.lng, args.description)
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 1
        if args.resolve_address:
            async with ReverseGeocodingService() as geocoder:
                address = await geocoder.address_or_label(entry.latitude, entry.longitude)
            entry = notebook.update_location(entry.id, address=address)
        _print_entry(entry)
        return 0

    if args.command == "update":
        try:
            entry = notebook.update_location(
                args.id,
                name=args.name,
                latitude=args.lat,
                longitude=args.lng,
                description=args.description,
            )
        except ValueError as e:
            print(str(e), file=sys.stderr)
            return 1
        if entry is None:
            print(f"Location not found: {args.id}", file=sys.stderr)
            return 1
        _print_entry(entry)
        return 0

    if args.command == "delete":
        if not notebook.delete_location(args.id):
            print(f"Location not found: {args.id}", file=sys.stderr)
            return 1
        print(f"Deleted {args.id}")
        return 0

    if args.command == "add-photo":
        try:
            photo = notebook.add_photo(args.id, args.image)
        except (LookupError, ValueError, OSError) as e:
            print(str(e), file=sys.stderr)
            return 1
        print(f"Added photo {photo.id} ({photo.original_name})")
        return 0

    if args.command == "delete-photo":
        if not notebook.delete_photo(args.id, args.photo_id):
            print("Photo not found", file=sys.stderr)
            return 1
        print(f"Deleted photo {args.photo_id}")
        return 0

    if args.command == "export":
        data = notebook.export_data()
        if args.out:
            args.out.write_text(data, encoding="utf-8")
            print(f"Exported {len(notebook.load())} location(s) to {args.out}")
        else:
            print(data)
        return 0

    if args.command == "import":
        if not notebook.import_data(args.source.read_text(encoding="utf-8")):
            print("Import rejected: expected a JSON list of locations", file=sys.stderr)
            return 1
        print(f"Imported {len(notebook.load())} location(s)")
        return 0

    if args.command == "clear":
        notebook.clear()
        print("Notebook cleared")
        return 0

    if args.command == "resolve-addresses":
        filled = await _resolve(notebook)
        print(f"Resolved {filled} address(es)")
        return 0

    return 2


def main() -> None:
    configure_logging(service_name="notebook-cli")
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
