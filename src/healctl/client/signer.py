#!/usr/bin/env python3
"""
HEALCTL SIGNER - AWS Signature V4 for admin calls
-------------------------------------------------
An httpx.Auth that signs every request with the alias credentials, the way
MinIO's admin API expects (service 's3', payload hash in a header). The
signature itself is botocore's; this class only moves the request across.

Author: HealCtl Team
Date: 2026-10-18
"""

import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

# Headers botocore adds that must travel with the httpx request
SIGNED_HEADERS = ("X-Amz-Date", "X-Amz-Content-SHA256", "Authorization")


class SigV4Auth(httpx.Auth):
    # The payload hash is part of the signature
    requires_request_body = True

    def __init__(self, access_key: str, secret_key: str, region: str = "us-east-1", service: str = "s3"):
        self.access_key = access_key
        self.region = region
        self.service = service
        self._signer = S3SigV4Auth(Credentials(access_key, secret_key), service, region)

    def auth_flow(self, request: httpx.Request):
        self.sign(request)
        yield request

    def sign(self, request: httpx.Request) -> None:
        aws_request = AWSRequest(
            method=request.method,
            url=str(request.url),
            data=request.content or b"",
            headers={"Host": request.headers["host"]},
        )
        self._signer.add_auth(aws_request)
        for name in SIGNED_HEADERS:
            if name in aws_request.headers:
                request.headers[name] = aws_request.headers[name]
