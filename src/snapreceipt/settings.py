"""
Application settings using Pydantic.

Settings are loaded from environment variables with .env file support.
Nested values use a double underscore, e.g.
``SNAPRECEIPT_PRINTER__NETWORK_HOSTS='["192.168.1.50"]'``.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from snapreceipt.printing.orchestrator import PrintOptions


class PrinterSettings(BaseSettings):
    """Printer transport and print job defaults."""

    model_config = SettingsConfigDict(env_prefix="SNAPRECEIPT_PRINTER__", extra="ignore")

    # Network ESC/POS printers, "address" or "address:port"
    network_hosts: List[str] = Field(default_factory=list)

    # Serial printers; None means auto-detect
    serial_ports: Optional[List[str]] = None
    serial_baudrate: int = 9600

    paper_width_mm: float = 80.0
    capture_width_mm: float = 72.0
    supports_raster: bool = True
    encoding: str = "cp437"

    connect_timeout_ms: int = Field(default=5000, gt=0)
    default_printer_id: Optional[str] = None

    copies: int = Field(default=1, ge=1)
    template: str = "classic"
    auto_print: bool = False


class ExtractionSettings(BaseSettings):
    """Receipt extraction (vision model) settings."""

    model_config = SettingsConfigDict(env_prefix="SNAPRECEIPT_EXTRACTION__", extra="ignore")

    gemini_api_key: str = ""
    model: str = "gemini-2.5-flash"
    timeout: float = 120.0
    max_retries: int = 3
    retry_delay: float = 1.0


class CounterSettings(BaseSettings):
    """Daily order number counter (Upstash Redis REST)."""

    model_config = SettingsConfigDict(env_prefix="SNAPRECEIPT_COUNTER__", extra="ignore")

    redis_url: str = ""
    redis_token: str = ""
    prefix: str = "dev"
    start: int = 100


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SNAPRECEIPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False
    shop_name: str = "Snap Receipt"

    # Nested settings
    printer: PrinterSettings = Field(default_factory=PrinterSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    counter: CounterSettings = Field(default_factory=CounterSettings)

    def print_options(self, copies: Optional[int] = None) -> PrintOptions:
        """Build per-call print options from the configured defaults."""
        return PrintOptions(
            shop_name=self.shop_name,
            copies=copies if copies is not None else self.printer.copies,
            capture_width_mm=self.printer.capture_width_mm,
            connect_timeout_ms=self.printer.connect_timeout_ms,
            use_image_capture=self.printer.supports_raster,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
