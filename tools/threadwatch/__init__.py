"""
threadwatch – harvest, archive and analyze imageboard threads.

Supports:
  • Sampling a board catalog across reply-count, image and recency views
  • Bounded local JSON snapshots of each sampled thread
  • Content-hash deduplicated image archiving with age-based purging
  • Tracked-term mention reports
  • LLM summaries and a downsampled delusional-content trend
"""
