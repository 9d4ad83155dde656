"""
Whisper Gateway

A Flask service that transcodes uploaded media with ffmpeg and transcribes it
with the whisper.cpp command line binary.

Usage:
    whisper-gateway

Endpoints:
    POST /transcribe - Transcribe an uploaded audio/video file
    GET /getsubs?id=<job id> - Download the subtitles produced for a job
    GET /status - Service status and resolved configuration
"""

__version__ = "1.0.0"
