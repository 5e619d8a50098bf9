from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """A pydantic model for tempserver settings.

    Attributes:
        host (str): The interface the listeners bind to.
        url_host (str): The host name used when building `url` and `ssl_url`.
        log_level (str): The log level passed to uvicorn.
        access_log (bool): Flag indicating if uvicorn should emit access logs.
        include_stacktrace (bool): Flag indicating if error responses should
            include the stacktrace of the exception.
        startup_poll_interval (float): How often (in seconds) the serving thread
            checks whether every listener has started.
    """

    host: str = "127.0.0.1"
    url_host: str = "localhost"
    log_level: str = "warning"
    access_log: bool = False
    include_stacktrace: bool = True
    startup_poll_interval: float = 0.01

    model_config = SettingsConfigDict(
        env_prefix="TEMPSERVER_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
    )


settings = Settings()
