"""
Scheduling core: tasks, study sessions, calendar views and LLM-driven generation.

- TaskStore / SessionStore: owner-bound snapshots over a KeyedStore backend
- CalendarIndex: local-day buckets of sessions
- GenerationMerger: tasks -> proposer -> validated bulk insert
- dashboard.summarize: read-only progress rollups
"""
