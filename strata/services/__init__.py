"""
Services for strata builds.

Each subpackage handles one concern of a build request (graph, planning,
cache, execution); build_service.BuildService ties them together.
"""
