"""What differs per tracker: request budget, source tag, announce and auth."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TrackerProfile:
    name: str
    request_limit: int | None
    source_tag: str
    announce_template: str

    def announce_url(self, passkey: str) -> str:
        return self.announce_template.format(passkey=passkey.strip())

    def authorization(self, api_key: str) -> str:
        """Gazelle API keys go into the Authorization header as-is."""
        key = (api_key or "").strip()
        if not key:
            raise ValueError(f"{self.name} API key is empty.")
        return key


_TRACKER_PROFILES: dict[str, TrackerProfile] = {
    "red": TrackerProfile(
        name="RED",
        request_limit=10,
        source_tag="RED",
        announce_template="https://flacsfor.me/{passkey}/announce",
    ),
}


def resolve_tracker_profile(tracker_name: str | None) -> TrackerProfile:
    profile = _TRACKER_PROFILES.get((tracker_name or "").strip().lower())
    if profile is not None:
        return profile
    supported = ", ".join(name.upper() for name in sorted(_TRACKER_PROFILES))
    raise ValueError(
        f"Unsupported tracker '{tracker_name}'. Supported trackers: {supported}."
    )
