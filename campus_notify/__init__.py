"""Realtime notification core for the campus community platform.

The package is split the same way as the rest of the platform services:
``domain`` holds plain entities, ``application`` the use cases other
subsystems call, ``infrastructure`` persistence and realtime transport,
``interfaces`` the HTTP and websocket edge, and ``client`` the session side
controller that mirrors a user's notifications.
"""
