"""Back-office API: tenant-scoped access guard, audit trail and usage metering."""
