"""Analysis orchestration and summary text helpers."""
