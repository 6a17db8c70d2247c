"""
Example: Grant and exercise a caveat-constrained permission

This script demonstrates how to:
1. Build a permission system from configuration
2. Approve a permission request with caveats
3. Call a restricted method through its caveat chain
4. Inspect and revoke the permission
"""

import json

from permission_controller import JsonRpcRequest, create_permission_system
from permission_controller.config import load_config


ORIGIN = "https://dapp.example"


def get_accounts(request, context):
    """Restricted method: the wallet's accounts"""
    return ["0xa11ce", "0xb0b", "0xca401"]


def approve_all(permissions_request):
    """Approval hook that grants exactly what was asked for"""
    print(f"Approving request {permissions_request.id} from {permissions_request.origin}")
    return permissions_request.permissions


def main():
    system = create_permission_system(
        load_config(),
        restricted_methods={"eth_accounts": get_accounts},
        request_user_approval=approve_all,
        downstream=lambda request: "0x10",
    )
    middleware = system.middleware

    print(f"\n{'='*70}")
    print("Unauthorized call")
    print(f"{'='*70}\n")
    response = middleware.handle(JsonRpcRequest("eth_accounts", id=1), ORIGIN)
    print(json.dumps(response.to_dict(), indent=2))

    print(f"\n{'='*70}")
    print("Request eth_accounts, limited to one account")
    print(f"{'='*70}\n")
    response = middleware.handle(
        JsonRpcRequest(
            "wallet_requestPermissions",
            [{"eth_accounts": {"caveats": [{"type": "limitResponseLength", "value": 1}]}}],
            id=2,
        ),
        ORIGIN,
    )
    print(json.dumps(response.to_dict(), indent=2))

    print(f"\n{'='*70}")
    print("Authorized call")
    print(f"{'='*70}\n")
    response = middleware.handle(JsonRpcRequest("eth_accounts", id=3), ORIGIN)
    print(json.dumps(response.to_dict(), indent=2))

    system.permission_controller.revoke_permission(ORIGIN, "eth_accounts")
    print(f"\nSubjects after revocation: {system.permission_controller.get_subjects()}")


if __name__ == "__main__":
    main()
