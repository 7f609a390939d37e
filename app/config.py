import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""
    APP_NAME: str = "Logo Mockup Compiler API"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_TO_FILE: bool = True

    # CDN settings
    CDN_HOST: str = "res.cloudinary.com"
    CLOUD_NAME: str = ""  # overrides the cloud parsed from the base URL when set
    OVERLAY_PIXEL_ASSET: str = "one_pixel_s4c3vt"

    # Compiler behaviour
    ENABLE_LOGO_STEP_SCALING: bool = True
    ENABLE_ALLOW_BACK_GATE: bool = False

    # Target render widths
    DEFAULT_RELATIVE_MAX: int = 900
    OVERLAY_MAX: int = 1400
    CART_THUMB_MAX: int = 200
    HOVER_THUMB_MAX: int = 400

    # Cache warming
    WARM_COLORS_PER_PRODUCT: int = 3
    WARM_MAX_URLS: int = 1000

    # CORS settings
    CORS_ORIGINS: list = ["*"]

    class Config:
        env_file = ".env"

settings = Settings()
