"""
Business logic for CourseTrack LMS.

Routers call into these modules; each mutating operation loads the catalog,
updates the learner's progress record, recomputes derived fields through the
aggregator and commits through the progress store.
"""
