import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    """Application settings and configuration"""

    def __init__(self):
        self.elasticsearch_url = os.getenv("ELASTICSEARCH_URL", "http://localhost:9200")
        self.elasticsearch_username = os.getenv("ELASTICSEARCH_USERNAME")
        self.elasticsearch_password = os.getenv("ELASTICSEARCH_PASSWORD")

        # Target indexes
        self.contacts_index = os.getenv("CONTACTS_INDEX", "contacts")
        self.facts_index = os.getenv("FACTS_INDEX", "facts")

        # API settings
        self.api_title = "Contacts Search API"
        self.api_description = "Filtered contact search, KPI and analytics aggregations over the contacts index"
        self.api_version = "1.0.0"
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # Search settings
        self.default_page_size = 1000
        self.default_page_offset = 0
        self.default_sort_field = "surname"
        self.pollingstation_facet_size = 500
        self.max_result_window = 10000
        # top_hits from+size limit, index.max_inner_result_window
        self.max_inner_result_window = int(os.getenv("MAX_INNER_RESULT_WINDOW", 100))
        self.geohash_precision = int(os.getenv("GEOHASH_PRECISION", 6))

    @property
    def elasticsearch_auth(self):
        """Get Elasticsearch authentication tuple"""
        if self.elasticsearch_username and self.elasticsearch_password:
            return (self.elasticsearch_username, self.elasticsearch_password)
        return None


# Global settings instance
settings = Settings()
