#!/usr/bin/env python3
"""
Contacts Search API
Development server: contact search, KPI and pivot endpoints over Elasticsearch
"""

import os
import uvicorn
from contacts_search.config.settings import settings

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")
    reload = os.getenv("RELOAD", "true").lower() == "true"

    print(f"Starting {settings.api_title} v{settings.api_version}")
    print(f"Elasticsearch: {settings.elasticsearch_url} (indexes {settings.contacts_index}, {settings.facts_index})")
    print(f"Docs: http://{host}:{port}/docs")

    uvicorn.run(
        "contacts_search.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True
    )
