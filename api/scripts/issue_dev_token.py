#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to issue an access token for local development.

Generates a fresh RSA key pair unless JWT_PRIVATE_KEY/JWT_PUBLIC_KEY are set,
prints the key pair as environment variables and signs a token carrying the
requested organization, permissions and supervised cells.

Usage:
    python scripts/issue_dev_token.py <org_id> [user_id] [cell_id,cell_id,...]
"""

import os
import sys

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.auth import AuthService, generate_dev_key_pair
from domain.authorization import (
    READ_READINESS,
    EVALUATE_READINESS,
    CREATE_CRITERIA,
    UPDATE_CRITERIA,
    DELETE_CRITERIA
)

ALL_PERMISSIONS = [
    READ_READINESS,
    EVALUATE_READINESS,
    CREATE_CRITERIA,
    UPDATE_CRITERIA,
    DELETE_CRITERIA
]


def _as_env(value: str) -> str:
    return value.replace("\n", "\\n")


def main(argv) -> int:
    if len(argv) < 2:
        print(__doc__)
        return 1

    org_id = argv[1]
    user_id = argv[2] if len(argv) > 2 else "dev-user"
    supervised = argv[3].split(",") if len(argv) > 3 else None

    private_key = os.getenv("JWT_PRIVATE_KEY")
    public_key = os.getenv("JWT_PUBLIC_KEY")
    if not (private_key and public_key):
        private_key, public_key = generate_dev_key_pair()
        print("=== Environment Variables ===")
        print(f'JWT_PRIVATE_KEY="{_as_env(private_key)}"')
        print(f'JWT_PUBLIC_KEY="{_as_env(public_key)}"')
        print()

    auth_service = AuthService(private_key, public_key)
    token = auth_service.generate_access_token(
        user_id,
        org_id,
        ALL_PERMISSIONS,
        supervised_cell_ids=supervised,
        expires_in_minutes=24 * 60
    )

    # Round trip so a broken key pair fails here instead of on the first request
    auth_service.validate_token(token)

    print("=== Access Token ===")
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
