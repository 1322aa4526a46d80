from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./pdfsign.db"
    
    # Storage
    storage_backend: Literal["local", "gcs", "s3", "supabase"] = "local"
    local_storage_dir: str = "./storage"
    gcs_bucket_name: str = "pdfsign-storage"
    gcs_project_id: str = ""
    s3_bucket_name: str = "pdfsign-storage"
    s3_endpoint_url: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    
    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_bucket_name: str = "pdfsign-storage"
    
    # App
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000"
    max_upload_bytes: int = 50 * 1024 * 1024  # 50 MiB
    
    # Field compositing (document units = PDF points)
    field_padding: float = 6.0
    default_font_size: float = 10.0
    font_height_ratio: float = 0.6
    min_font_size: float = 6.0
    font_size_step: float = 0.5
    radio_radius_ratio: float = 0.3
    radio_min_radius: float = 6.0
    radio_max_radius: float = 12.0
    radio_fill_ratio: float = 0.55
    radio_label_gap: float = 4.0
    font_name: str = "helv"  # base-14 Helvetica
    font_file: Optional[str] = None  # TTF/OTF embedded once per job when set
    
    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
