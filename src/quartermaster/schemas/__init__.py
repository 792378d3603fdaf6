from quartermaster.schemas.app import App, AppVersion, Worker, load_manifest

__all__ = ["App", "AppVersion", "Worker", "load_manifest"]
