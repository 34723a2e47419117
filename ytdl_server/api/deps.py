from fastapi import Request
from ytdl_server.config.settings import Settings
from ytdl_server.services.jobs import JobRunner
from ytdl_server.services.retention import RetentionSweeper

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_runner(request: Request) -> JobRunner:
    return request.app.state.runner

def get_sweeper(request: Request) -> RetentionSweeper:
    return request.app.state.sweeper
