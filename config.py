"""Configuration and environment settings"""

from pydantic_settings import BaseSettings
from typing import Optional, List, Tuple
from pathlib import Path


class Settings(BaseSettings):
    """Application configuration"""

    # Database (in-process repository when unset)
    DATABASE_URL: Optional[str] = None

    # Output
    OUTPUT_DIR: str = "./output"

    # Upload intake
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB
    MAX_ROWS_PER_SHEET: int = 20000

    # Sheet layout detection
    VISIBLE_START_ROW: int = 4  # 0-based; rows above hold the metadata block
    META_CELLS: str = "1:0:3,2:0:3,3:0:3"  # row:keyCol:valCol triples, 0-based
    STOP_MARKER: str = "diketahui"
    STOP_MARKER_COLUMN: int = 1
    HEADER_SCAN_ROWS: int = 12
    HEADER_MIN_CELLS: int = 3

    # Persistence
    ADDRESS_PRESENT_MARKER: str = "Ada"
    ADDRESS_ABSENT_MARKER: str = "Tidak Ada"
    REPORT_LIST_LIMIT: int = 50

    # Report layout
    REPORT_NUMBERED_COLUMNS: int = 107

    # Drafts
    DRAFT_MAX_ENTRIES: int = 200

    # Web
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def get_meta_cells(self) -> List[Tuple[int, int, int]]:
        """Parse META_CELLS into (row, key_col, value_col) triples"""
        triples = []
        for chunk in self.META_CELLS.split(","):
            parts = [p.strip() for p in chunk.split(":")]
            if len(parts) != 3 or not all(p.isdigit() for p in parts):
                continue
            triples.append((int(parts[0]), int(parts[1]), int(parts[2])))
        return triples

    def get_cors_origins(self) -> List[str]:
        """Get CORS origin list"""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def get_output_path(self, subdir: str = "") -> Path:
        """Get output directory path"""
        path = Path(self.OUTPUT_DIR) / subdir
        path.mkdir(parents=True, exist_ok=True)
        return path


# Global settings instance
settings = Settings()
