#!/usr/bin/env python3
"""
Generate and send randomized resistance observations to the API.

This script simulates laboratories reporting susceptibility results by:
1. Loading the bacteria, antibiotic, region and facility catalogs from the API
2. Generating random sample counts for random catalog combinations
3. Sending them to the bulk import endpoint in batches at regular intervals

Usage:
    # Send 10 batches of 20 observations with 2 second delay
    python scripts/generate_test_data.py --count 10 --batch-size 20 --delay 2

    # Continuous mode: send a batch every 5 seconds
    python scripts/generate_test_data.py --continuous --delay 5

    # Spread sample dates over the last 90 days
    python scripts/generate_test_data.py --count 100 --days-min 0 --days-max 90
"""

import argparse
import random
import sys
import time
from datetime import date, timedelta
from typing import Dict, List

import requests


def load_catalogs(api_url: str = "http://localhost:8000") -> Dict[str, List[dict]]:
    """
    Load the reference catalogs observations must point at.

    Args:
        api_url: Base URL of the API

    Returns:
        Catalog name -> list of entries as returned by the API
    """
    catalogs = {}
    for name in ("bacteria", "antibiotics", "regions", "facilities"):
        response = requests.get(f"{api_url}/api/{name}", timeout=10)
        response.raise_for_status()
        catalogs[name] = response.json()
        print(f"✓ Loaded {len(catalogs[name])} {name}")
    return catalogs


def random_observation(catalogs: Dict[str, List[dict]], days_min: int = 0, days_max: int = 30) -> dict:
    """Build one random observation payload (camelCase, as the API expects)."""
    region = random.choice(catalogs["regions"])
    facilities = [f for f in catalogs["facilities"] if f["regionId"] == region["id"]]
    total = random.randint(20, 500)
    resistant = int(total * random.random() * 0.6)
    sample_date = date.today() - timedelta(days=random.randint(days_min, days_max))

    return {
        "bacteriaId": random.choice(catalogs["bacteria"])["id"],
        "antibioticId": random.choice(catalogs["antibiotics"])["id"],
        "regionId": region["id"],
        "facilityId": random.choice(facilities)["id"] if facilities else None,
        "sampleDate": sample_date.isoformat(),
        "totalSamples": total,
        "resistantSamples": resistant,
        "notes": "generated by generate_test_data.py",
    }


def send_batch_to_api(observations: List[dict], api_url: str = "http://localhost:8000") -> List[dict]:
    """
    Send a batch of observations to the bulk import endpoint.

    Args:
        observations: Observation payloads
        api_url: Base URL of the API

    Returns:
        Stored observations as returned by the API
    """
    endpoint = f"{api_url}/api/resistance-data/bulk"

    try:
        response = requests.post(
            endpoint,
            json=observations,
            headers={"Content-Type": "application/json"},
            timeout=10
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        print(f"✗ API request failed: {e}")
        raise


def generate_and_send_observations(
    count: int = 10,
    batch_size: int = 20,
    delay: float = 2.0,
    continuous: bool = False,
    days_min: int = 0,
    days_max: int = 30,
    api_url: str = "http://localhost:8000",
):
    """
    Generate randomized observation batches and send them to the API.

    Args:
        count: Number of batches to send (ignored if continuous=True)
        batch_size: Observations per batch
        delay: Delay between sends in seconds
        continuous: If True, run indefinitely
        days_min: Minimum days in the past for sample dates
        days_max: Maximum days in the past for sample dates
        api_url: Base URL of the API
    """
    print("\n" + "=" * 60)
    print("Loading catalogs...")
    print("=" * 60)
    try:
        catalogs = load_catalogs(api_url)
    except requests.exceptions.RequestException as e:
        print(f"✗ Could not load catalogs: {e}")
        sys.exit(1)

    if not all(catalogs[name] for name in ("bacteria", "antibiotics", "regions")):
        print("✗ Bacteria, antibiotic and region catalogs must not be empty!")
        sys.exit(1)

    print("\n" + "=" * 60)
    print(f"{'Continuous' if continuous else f'Sending {count}'} batch generation")
    print(f"Batch size: {batch_size} | Delay: {delay}s | Sample dates: {days_min}-{days_max} days ago")
    print(f"API: {api_url}")
    print("=" * 60 + "\n")

    sent_count = 0
    failed_count = 0
    observation_count = 0

    try:
        while True:
            batch = [
                random_observation(catalogs, days_min, days_max)
                for _ in range(batch_size)
            ]

            try:
                stored = send_batch_to_api(batch, api_url)
                sent_count += 1
                observation_count += len(stored)

                print(f"[{sent_count:4d}] ✓ Sent {len(stored)} observation(s)")

            except Exception as e:
                failed_count += 1
                print(f"[{sent_count + failed_count:4d}] ✗ Failed to send batch: {e}")

            if not continuous and sent_count >= count:
                break

            time.sleep(delay)

    except KeyboardInterrupt:
        print("\n\n" + "=" * 60)
        print("Interrupted by user")

    print("=" * 60)
    print("Summary:")
    print(f"  Batches sent:   {sent_count}")
    print(f"  Batches failed: {failed_count}")
    print(f"  Observations:   {observation_count}")
    print("=" * 60 + "\n")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate and send randomized resistance observations to the API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Send 10 batches with 2 second delay
  %(prog)s --count 10 --delay 2

  # Continuous mode: send a batch every 5 seconds
  %(prog)s --continuous --delay 5

  # Use custom API URL
  %(prog)s --count 50 --api-url http://api.example.com:8000
        """
    )

    parser.add_argument(
        "-c", "--count",
        type=int,
        default=10,
        help="Number of batches to send (default: 10, ignored if --continuous)"
    )

    parser.add_argument(
        "-b", "--batch-size",
        type=int,
        default=20,
        help="Observations per batch (default: 20)"
    )

    parser.add_argument(
        "-d", "--delay",
        type=float,
        default=2.0,
        help="Delay between sends in seconds (default: 2.0)"
    )

    parser.add_argument(
        "--continuous",
        action="store_true",
        help="Run continuously (ignore --count)"
    )

    parser.add_argument(
        "--days-min",
        type=int,
        default=0,
        help="Minimum days in the past for sample dates (default: 0)"
    )

    parser.add_argument(
        "--days-max",
        type=int,
        default=30,
        help="Maximum days in the past for sample dates (default: 30)"
    )

    parser.add_argument(
        "--api-url",
        type=str,
        default="http://localhost:8000",
        help="Base URL of the API (default: http://localhost:8000)"
    )

    args = parser.parse_args()

    if args.days_min < 0 or args.days_max < 0:
        parser.error("days-min and days-max must be >= 0")

    if args.days_min > args.days_max:
        parser.error("days-min cannot be greater than days-max")

    if args.delay < 0:
        parser.error("delay must be >= 0")

    if args.batch_size <= 0:
        parser.error("batch-size must be > 0")

    if not args.continuous and args.count <= 0:
        parser.error("count must be > 0 (or use --continuous)")

    generate_and_send_observations(
        count=args.count,
        batch_size=args.batch_size,
        delay=args.delay,
        continuous=args.continuous,
        days_min=args.days_min,
        days_max=args.days_max,
        api_url=args.api_url,
    )


if __name__ == "__main__":
    main()
