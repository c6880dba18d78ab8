#!/usr/bin/env python3
"""Verify OpenRouteService connectivity with the configured key and profile."""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from beatroute.config import settings
from beatroute.services.routing.errors import ProviderUnavailableError
from beatroute.services.routing.ors_client import ORSClient


def main():
    print("=" * 60)
    print("OpenRouteService Connection Test")
    print("=" * 60)
    print()

    print("1. Checking ORS configuration...")
    if not settings.ors_api_key:
        print("   [ERROR] ORS API key is not configured")
        print("   Please set BEATROUTE_ORS_API_KEY in your .env file")
        return 1
    print(f"   [OK] ORS Base URL: {settings.ors_base_url}")
    print(f"   [OK] ORS Profile: {settings.ors_profile}")
    print()

    print("2. Testing ORS matrix request...")
    test_coords = [
        (52.517037, 13.388860),  # Berlin, Germany
        (52.496891, 13.385983),  # Berlin, Germany
    ]
    try:
        result = ORSClient().matrix(test_coords)
    except ProviderUnavailableError as e:
        print(f"   [ERROR] Matrix request failed: {e}")
        return 1
    distances = result["distances"]
    durations = result["durations"]
    print(f"   [OK] Received {len(distances)}x{len(distances[0]) if distances else 0} distance matrix")
    print(f"   [OK] Sample distance: {distances[0][1]:.2f} meters")
    print(f"   [OK] Sample duration: {durations[0][1]:.2f} seconds")
    print()

    print("3. Testing ORS directions request...")
    try:
        geometry = ORSClient().directions(test_coords)
    except ProviderUnavailableError as e:
        print(f"   [ERROR] Directions request failed: {e}")
        return 1
    print(f"   [OK] Received route geometry with {len(geometry)} points")
    print()

    print("=" * 60)
    print("[SUCCESS] OpenRouteService is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
