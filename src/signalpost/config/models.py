# src/signalpost/config/models.py

from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CenterSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="default", min_length=1)
    log_handler_failures: bool = True       # warning + traceback when a handler raises


class DiagnosticsSettings(BaseModel):
    """Observers attached to the center's diagnostics bus."""
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    log_events: bool = True                 # LoggerObserver
    console: bool = False                   # ConsoleObserver
    jsonfile: Optional[Path] = None         # JsonFileObserver target


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    verbose: bool = False
    to_file: bool = False
    log_dir: Optional[Path] = None          # defaults to ~/.signalpost/logs


class SignalpostConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    center: CenterSettings = Field(default_factory=CenterSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
