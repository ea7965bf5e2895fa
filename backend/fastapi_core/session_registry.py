"""
FastAPI BLANG Session Registry

Manages long-lived string table editing sessions across multiple requests.
Each opened table gets ONE session that persists until explicitly closed.
"""

import threading
from typing import Dict

from loguru import logger

from parsers.errors import NotFoundError
from services.core.blang_session import BlangSession

# Global registry of active editing sessions
_blang_sessions: Dict[int, BlangSession] = {}
_registry_lock = threading.Lock()

# Integer ID management for cleaner URLs
_next_session_id = 1


def register_session(session: BlangSession) -> int:
    """
    Register a session and get an integer ID for it.

    Args:
        session: A loaded BlangSession

    Returns:
        Integer ID for this session
    """
    global _next_session_id

    with _registry_lock:
        session_id = _next_session_id
        _next_session_id += 1
        _blang_sessions[session_id] = session

    logger.info(f"Registered BLANG session {session_id} ({session.language})")
    return session_id


def get_session(session_id: int) -> BlangSession:
    """
    Get an editing session.

    Raises:
        NotFoundError: If no session is registered under this ID
    """
    with _registry_lock:
        session = _blang_sessions.get(session_id)

    if session is None:
        raise NotFoundError(f"BLANG session {session_id} not found")
    return session


def close_session(session_id: int) -> bool:
    """
    Close and cleanup an editing session.

    Returns:
        True if session was closed, False if no session existed
    """
    with _registry_lock:
        session = _blang_sessions.pop(session_id, None)

    if session is None:
        logger.debug(f"No session to close for ID {session_id}")
        return False

    session.close()
    logger.info(f"Closed BLANG session {session_id}")
    return True


def get_active_sessions() -> Dict[int, dict]:
    """
    Get information about all active sessions.

    Returns:
        Dict mapping session ID to session info
    """
    with _registry_lock:
        return {
            session_id: {
                'language': session.language,
                'string_count': len(session.blang_file) if session.blang_file else 0,
                'has_unsaved_changes': session.unsaved_changes,
            }
            for session_id, session in _blang_sessions.items()
        }


def cleanup_all_sessions():
    """
    Close all active sessions. Used for testing or shutdown.
    """
    with _registry_lock:
        sessions = list(_blang_sessions.values())
        _blang_sessions.clear()

    for session in sessions:
        session.close()

    logger.info(f"Cleaned up {len(sessions)} BLANG sessions")


def get_session_stats() -> dict:
    """
    Get statistics about the session registry.
    """
    with _registry_lock:
        return {
            'total_active_sessions': len(_blang_sessions),
            'sessions_with_unsaved_changes': sum(1 for s in _blang_sessions.values() if s.unsaved_changes),
            'session_ids': list(_blang_sessions.keys())
        }
