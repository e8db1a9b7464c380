from __future__ import annotations

import json
import time

from sigid import Issuer, SignedIdentity, Stage


def main() -> None:
    issuer = Issuer("example-secret")
    signed = issuer.issue()
    token = signed.to_base64()
    lifeline = issuer.renew(token, expires_at=time.time() + 3600)

    received = SignedIdentity.from_base64(token, "example-secret")
    stage = received.stage()
    later = issuer.verify(token, lifeline=lifeline.to_base64(), at=time.time() + 120)
    print(json.dumps({
        "token": token,
        "identity": received.to_identity().to_base64(),
        "stage": stage,
        "valid": stage == Stage.VALID,
        "lifeline": lifeline.to_base64(),
        "report_in_two_minutes": later.__dict__,
    }, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
