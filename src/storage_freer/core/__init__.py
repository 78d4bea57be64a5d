"""Scanning engine: filesystem access, aggregation and session orchestration."""
