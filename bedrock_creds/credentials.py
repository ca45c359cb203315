from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ResolvedCredential:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str | None = field(default=None, repr=False)
    region: str = ""
    expiration: str | None = None

    def to_credential_process(self) -> dict[str, Any]:
        """Render the AWS CLI ``credential_process`` output document."""
        out: dict[str, Any] = {
            "Version": 1,
            "AccessKeyId": self.access_key_id,
            "SecretAccessKey": self.secret_access_key,
        }
        if self.session_token:
            out["SessionToken"] = self.session_token
        if self.expiration:
            out["Expiration"] = self.expiration
        return out


@dataclass(frozen=True)
class CallerIdentity:
    account: str
    arn: str
    user_id: str

    def to_dict(self) -> dict[str, str]:
        return {"account": self.account, "arn": self.arn, "userId": self.user_id}
