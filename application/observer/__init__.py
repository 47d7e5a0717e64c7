from application.observer.observer_config import BackoffSettings, ObserverConfig

__all__ = ["BackoffSettings", "ObserverConfig"]
