# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/errors.py
class SignalpostError(RuntimeError):
    """Base class for signalpost failures."""

class InvalidChannelError(SignalpostError):
    """Raised when a channel name is empty or not a string."""

class EventVocabularyError(SignalpostError):
    """Raised when an entity class declares an unusable event enum."""
