"""CatTV backend: daily food claims, cat feeding, purchases and chain mirroring."""
