import json
import sys
from pathlib import Path

from utils import storage_utils


def sector_entry(sector: dict) -> dict:
    return {
        "code": sector["sector"],
        "base_price": str(sector["base_price"]),
        "max_capacity": sector["max_capacity"],
        "open_hour": sector.get("open_hour"),
        "close_hour": sector.get("close_hour"),
        "duration_limit_minutes": sector.get("duration_limit_minutes"),
    }


def spot_entry(spot: dict) -> dict:
    return {
        "id": spot["id"],
        "sector_code": spot["sector"],
        "lat": spot["lat"],
        "lng": spot["lng"],
        "occupied": spot.get("occupied", False),
    }


def import_garage(garage_file: Path):
    if not garage_file.exists():
        print(f"File not found: {garage_file}")
        return

    with open(garage_file, "r", encoding="utf-8") as f:
        data = json.load(f)

    storage_utils.init_db()

    with storage_utils.transaction() as conn:
        for sector in data.get("garage", []):
            storage_utils.save_new_sector_to_db(sector_entry(sector), conn)
            print(f"Inserted sector {sector['sector']}")

        for spot in data.get("spots", []):
            storage_utils.save_new_spot_to_db(spot_entry(spot), conn)

    print(f"Done importing {len(data.get('garage', []))} sectors and {len(data.get('spots', []))} spots.")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.import_garage_json <garage.json>")
        sys.exit(1)
    import_garage(Path(sys.argv[1]))


# python -m scripts.import_garage_json garage.json  run this module once to
# load the sectors and spots of the garage into the db
