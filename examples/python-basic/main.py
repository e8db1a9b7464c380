import os
import sys

from sigid import Issuer, VerifyFailureCode
from sigid.log import configure_logging

configure_logging(os.getenv("SIGID_LOG_LEVEL", "INFO"), json_output=False)

issuer = Issuer(os.getenv("SIGID_SECRET", "dev-secret"))

if len(sys.argv) > 1:
    report = issuer.verify(sys.argv[1], lifeline=sys.argv[2] if len(sys.argv) > 2 else None)
    print("code:", report.code)
    if report.code == VerifyFailureCode.EXPIRED:
        print("token expired; present a lifeline to extend it")
else:
    token = issuer.issue().to_base64()
    print("token:", token)
    print("lifeline:", issuer.renew(token).to_base64())
