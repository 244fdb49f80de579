"""Obtain the long-lived YouTube refresh token used by publish mode.

Run once, open the printed URL, approve access and paste back the ``code``
query parameter from the redirect. Store the printed token as
``YOUTUBE_REFRESH_TOKEN``.
"""

from __future__ import annotations

import argparse
import os
from typing import Any, Dict

from google_auth_oauthlib.flow import Flow

from script_renderer.publish import SCOPES, TOKEN_URI

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


def build_client_config(client_id: str, client_secret: str, redirect_uri: str) -> Dict[str, Any]:
    return {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }


def build_flow(client_id: str, client_secret: str, redirect_uri: str) -> Flow:
    return Flow.from_client_config(
        build_client_config(client_id, client_secret, redirect_uri),
        scopes=SCOPES,
        redirect_uri=redirect_uri,
        # The code may come from an earlier invocation, so no PKCE verifier.
        autogenerate_code_verifier=False,
    )


def authorization_url(flow: Flow) -> str:
    # prompt=consent forces Google to issue a refresh token on every grant.
    url, _state = flow.authorization_url(access_type="offline", prompt="consent")
    return url


def exchange_code(flow: Flow, code: str) -> str:
    flow.fetch_token(code=code.strip())
    token = flow.credentials.refresh_token
    if not token:
        raise RuntimeError("Google did not return a refresh token; revoke access and retry")
    return token


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mint a YouTube refresh token for publish mode")
    parser.add_argument("--client-id", default=os.getenv("YOUTUBE_CLIENT_ID"))
    parser.add_argument("--client-secret", default=os.getenv("YOUTUBE_CLIENT_SECRET"))
    parser.add_argument("--redirect-uri", default=os.getenv("YOUTUBE_REDIRECT_URI"))
    parser.add_argument("--code", help="Authorization code (prompted for when omitted)")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.client_id and args.client_secret and args.redirect_uri):
        parser.error("client id, client secret and redirect uri are required")

    flow = build_flow(args.client_id, args.client_secret, args.redirect_uri)
    code = args.code
    if not code:
        print("Open this URL and approve access:")
        print(authorization_url(flow))
        code = input("Authorization code: ")

    print(f"YOUTUBE_REFRESH_TOKEN={exchange_code(flow, code)}")


if __name__ == "__main__":
    main()
