from fastapi import Depends, Request

from imagebox.context import AppContext
from imagebox.settings import Settings
from imagebox.storage.disk import DiskStorage
from imagebox.storage.dynamodb import DynamoDBService

def get_context(request: Request) -> AppContext:
    """Dependency provider for the application context"""
    return request.app.state.ctx

def get_settings(ctx: AppContext = Depends(get_context)) -> Settings:
    return ctx.settings

def get_disk_storage(ctx: AppContext = Depends(get_context)) -> DiskStorage:
    """Dependency provider for DiskStorage"""
    return ctx.disk

def get_dynamodb_service(ctx: AppContext = Depends(get_context)) -> DynamoDBService:
    """Dependency provider for DynamoDBService"""
    return ctx.db
