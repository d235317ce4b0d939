"""tanda_api -- HTTP surface for the scheduled reconciliation jobs."""
