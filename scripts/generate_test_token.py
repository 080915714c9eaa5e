#!/usr/bin/env python3
"""
Print test JWTs for manual auth checks against the gateway.

With HARNESS_JWT_SECRET set, the first token is signed with it (it should be
accepted when the secret matches the user service). The second is always
signed with a throwaway secret and must be rejected.
"""
import os
import sys

from gateway_harness.tokens import forge_untrusted_token, mint_token, peek_claims


def main():
    username = sys.argv[1] if len(sys.argv) > 1 else "testuser"
    print("=== Test JWT tokens ===\n")

    secret = os.getenv("HARNESS_JWT_SECRET")
    if secret:
        token = mint_token(username, secret)
        print(f"Signed token ({username}):")
        print(f"{token}\n")

    untrusted = forge_untrusted_token(username)
    print(f"Untrusted token ({username}, claims: {peek_claims(untrusted)['roles']}):")
    print(f"{untrusted}\n")

    print("Usage:")
    print('  curl -H "Authorization: Bearer $TOKEN" http://localhost:8080/api/orders/user/testuser')
    return 0


if __name__ == "__main__":
    sys.exit(main())
