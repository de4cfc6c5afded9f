from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database (backs the key-value blob store)
    database_url: str = "sqlite:///./printstack.db"

    # API
    api_v1_str: str = "/api/v1"
    project_name: str = "PrintStack"
    application_name: str = "PrintStack"
    data_version: str = "2.0"

    # Inventory
    default_material_types: List[str] = ["PLA", "PETG", "ABS", "TPU"]
    default_color_hex: str = "#cccccc"
    default_diameter: float = 1.75

    # Data grid
    default_page_size: int = 25
    search_debounce_ms: int = 300

    # Seeding / UI
    data_dir: str = "./data"
    seed_filaments_csv: str = "seed/filaments.csv"
    api_base_url: str = "http://localhost:8000/api/v1"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PRINTSTACK_"


settings = Settings()
