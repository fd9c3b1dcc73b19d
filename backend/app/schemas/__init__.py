"""
Request and response schemas for the CourseTrack LMS API.
"""
