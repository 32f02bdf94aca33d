"""Framework adapters for fastlypurge."""
