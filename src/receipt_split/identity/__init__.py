from .stable_keys import StableKeyResolver, LOCAL_KEY_PREFIX

__all__ = ["StableKeyResolver", "LOCAL_KEY_PREFIX"]
