"""
Subscription registry.

Tracks the channels the caller asked for (which survive reconnects) and the
channels the server has confirmed in the current connection lifetime
(wiped on every connect attempt).
"""

from deribit_ws.lib.constants import PRIVATE_CHANNEL_PREFIX


def is_private_channel(channel: str) -> bool:
    """Private channels need an access token to subscribe."""
    return channel.startswith(PRIVATE_CHANNEL_PREFIX)


class SubscriptionRegistry:
    """Requested and confirmed-active channel names."""

    def __init__(self):
        self._requested: list[str] = []
        self._confirmed: set[str] = set()

    @property
    def requested(self) -> list[str]:
        """Requested channels in request order, duplicates included."""
        return list(self._requested)

    @property
    def confirmed(self) -> set[str]:
        return set(self._confirmed)

    def add(self, channels: list[str]) -> None:
        self._requested.extend(channels)

    def pending(self) -> tuple[list[str], list[str]]:
        """Split unconfirmed channels into public and private buckets.

        Returns:
            (public, private), each deduplicated in request order
        """
        public: list[str] = []
        private: list[str] = []
        seen: set[str] = set()

        for channel in self._requested:
            if channel in seen or channel in self._confirmed:
                continue
            seen.add(channel)
            if is_private_channel(channel):
                private.append(channel)
            else:
                public.append(channel)

        return public, private

    def mark_confirmed(self, channels: list[str]) -> None:
        # Only names the caller asked for can become active
        requested = set(self._requested)
        self._confirmed.update(c for c in channels if c in requested)

    def reset(self) -> None:
        """Forget confirmations; called at the start of every connect attempt."""
        self._confirmed.clear()
