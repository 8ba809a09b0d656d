import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

DEFAULT_CHROME_PORT = 9222


class Settings(BaseModel):
    """Runtime settings, read from the environment (and .env)."""
    job_name: str = Field("", description="Name of the running job")
    jobs_dir: Path = Field(Path("jobs"), description="Root of job directories")
    chrome_port: int = Field(0, description="Port of a running Chrome, 0 to launch one")
    chrome_binary: str = "google-chrome"
    chrome_startup_wait: float = 3.0
    headless: bool = True
    log_level: str = "WARNING"

    @field_validator('chrome_port')
    @classmethod
    def validate_port(cls, v):
        if v < 0 or v > 65535:
            raise ValueError("chrome_port must be between 0 and 65535")
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_level(cls, v):
        return v.upper()

    @classmethod
    def from_env(cls, job_name: Optional[str] = None, **overrides) -> "Settings":
        values = {
            "job_name": job_name or os.getenv("JOB_NAME", ""),
            "jobs_dir": os.getenv("SCRAPEJOBS_JOBS_DIR", "jobs"),
            "chrome_port": int(os.getenv("SCRAPEJOBS_CHROME_PORT", "0") or 0),
            "chrome_binary": os.getenv("SCRAPEJOBS_CHROME_BINARY", "google-chrome"),
            "chrome_startup_wait": float(os.getenv("SCRAPEJOBS_CHROME_STARTUP_WAIT", "3")),
            "headless": os.getenv("SCRAPEJOBS_HEADLESS", "true").lower() not in ("0", "false", "no"),
            "log_level": os.getenv("SCRAPEJOBS_LOG_LEVEL", "WARNING"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def job_dir(self) -> Path:
        return (self.jobs_dir / self.job_name).resolve()

    @property
    def output_dir(self) -> Path:
        return self.job_dir / "output"

    def job_file(self, filename: str) -> Path:
        """Path of a file that ships with the job (inputs)."""
        return self.job_dir / filename

    def output_path(self, filename: str) -> Path:
        """Path of a file the job produces."""
        return self.output_dir / filename
