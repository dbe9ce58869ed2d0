import os
import logging

class Config:
    def __init__(self):
        self.APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8080")
        self.POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", 1))
        self.READY_TIMEOUT_SECONDS = float(os.getenv("READY_TIMEOUT_SECONDS", 300)) # 0 waits forever
        self.REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", 5))
        self.WORK_DIR = os.getenv("WORK_DIR", "upgrade-example")
        self.APP_REPO_URL = os.getenv("APP_REPO_URL", "https://github.com/dashaun/spring-petclinic.git")
        self.JAR_NAME = os.getenv("JAR_NAME", "spring-petclinic-2.7.3-spring-boot.jar")
        self.PROMPT_TIMEOUT = float(os.getenv("PROMPT_TIMEOUT", 5)) # Pause between talking points
        self.METRICS_PORT = int(os.getenv("METRICS_PORT", 0)) # 0 disables the Prometheus endpoint
        self.SDKMAN_DIR = os.getenv("SDKMAN_DIR", os.path.join(os.path.expanduser("~"), ".sdkman"))

        # Validation
        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be positive")
        if self.READY_TIMEOUT_SECONDS < 0:
            raise ValueError("READY_TIMEOUT_SECONDS must not be negative")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        if self.PROMPT_TIMEOUT < 0:
            raise ValueError("PROMPT_TIMEOUT must not be negative")
        if self.METRICS_PORT < 0:
            raise ValueError("METRICS_PORT must not be negative")

    @property
    def ready_timeout(self):
        """Readiness deadline in seconds, or None to poll until the app answers."""
        return self.READY_TIMEOUT_SECONDS or None

config = Config()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("upgrade-demo")
