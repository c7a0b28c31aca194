#!/usr/bin/env python3
"""
TestRail Sections Check Script
Run this to verify your TestRail credentials and preview the section tree
the dashboard will offer for selection.
"""

import argparse
import os
import sys
from pathlib import Path

import requests
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.services.sections import (  # noqa: E402
    SectionCycleError,
    SectionNode,
    build_section_tree,
    parse_sections,
)
from testrail_client import TestRailClient, TestRailShapeError  # noqa: E402

# Load environment variables
load_dotenv()


def print_tree(nodes: list[SectionNode], depth: int = 0, max_depth: int | None = None):
    for node in nodes:
        print(f"{'   ' * depth}- [{node.id}] {node.name}")
        if max_depth is None or depth + 1 < max_depth:
            print_tree(node.children, depth + 1, max_depth)


def check_sections(max_depth: int | None) -> bool:
    """Fetch every section and print the reconstructed tree."""
    base_url = os.getenv("TESTRAIL_URL")
    user = os.getenv("TESTRAIL_USER_EMAIL")
    api_key = os.getenv("TESTRAIL_API_KEY")
    project_id = int(os.getenv("TESTRAIL_PROJECT_ID", "1"))
    suite_id = int(os.getenv("TESTRAIL_SUITE_ID", "1"))

    print("🔍 Testing TestRail Connection...")
    print(f"📍 URL: {base_url}")
    print(f"👤 User: {user}")
    print(f"🔑 API Key: {'*' * (len(api_key) - 4) + api_key[-4:] if api_key else 'Not set'}")
    print(f"📁 Project / Suite: {project_id} / {suite_id}")
    print("-" * 50)

    if not all([base_url, user, api_key]):
        print("❌ Missing credentials! Set TESTRAIL_URL, TESTRAIL_USER_EMAIL and TESTRAIL_API_KEY.")
        return False

    client = TestRailClient(
        base_url=base_url.rstrip("/"),
        auth=(user, api_key),
        project_id=project_id,
        suite_id=suite_id,
    )
    try:
        sections = parse_sections(client.get_sections())
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "unknown"
        if status == 401:
            print("❌ Authentication failed! Check your email and API key.")
        elif status == 403:
            print("❌ Access denied! Your API key may not have sufficient permissions.")
        else:
            print(f"❌ API Error: {status} - {e}")
        return False
    except requests.exceptions.ConnectionError:
        print("❌ Connection failed! Check your TESTRAIL_URL.")
        return False
    except requests.exceptions.Timeout:
        print("❌ Connection timeout! TestRail server may be slow or unreachable.")
        return False
    except (TestRailShapeError, RuntimeError) as e:
        print(f"❌ Unexpected TestRail response: {e}")
        return False

    try:
        tree = build_section_tree(sections)
    except SectionCycleError as e:
        print(f"❌ Malformed section hierarchy: {e}")
        return False
    print(f"✅ Found {len(sections)} sections in {len(tree)} root folders:")
    print_tree(tree, max_depth=max_depth)
    return True


def main():
    parser = argparse.ArgumentParser(description="Preview the TestRail section tree")
    parser.add_argument("--depth", type=int, default=2, help="Levels to print (0 = all)")
    args = parser.parse_args()
    ok = check_sections(args.depth or None)
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
