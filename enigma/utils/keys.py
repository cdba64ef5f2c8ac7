# enigma/utils/keys.py
class KeyFactory:
    """Generates standardized Redis keys."""

    # --- Counters ---
    @staticmethod
    def stats() -> str:
        return "stats"

    # --- Identities ---
    @staticmethod
    def identity_profile(identity_id: str) -> str:
        return f"identity:profile:{identity_id}"

    @staticmethod
    def all_identities_set() -> str:
        return "identities:all"

    @staticmethod
    def fingerprint_to_identity_map() -> str:
        """HASH mapping device fingerprint -> identity_id."""
        return "map:fingerprint_to_identity"
