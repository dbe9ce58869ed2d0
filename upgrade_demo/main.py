import argparse
import subprocess
import sys

from prometheus_client import start_http_server

from upgrade_demo.config import config, logger
from upgrade_demo.demo import REQUIRED_TOOLS, UpgradeDemo, Variant, check_dependencies
from upgrade_demo.errors import UpgradeDemoError
from upgrade_demo.metrics.matrix import ResultsMatrix, RunDescriptor
from upgrade_demo.validation import record_and_show, show_validation_table

JAVA_8 = "8.0.442-librca"
JAVA_11 = "11.0.26-librca"
JAVA_17 = "17.0.14-librca"
JAVA_23 = "23.0.2-librca"
INITIAL_SPRING_VERSION = "2.7.3"

# Java upgrades on the initial Spring Boot version, then Spring Boot upgrades on Java 17
JAVA_UPGRADES = [JAVA_11, JAVA_17]
SPRING_UPGRADES = ["3.0.x", "3.1.x", "3.2.x", "3.3.x", "3.4.x"]

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Spring Boot upgrade demo with startup/memory validation")
    parser.add_argument("--url", default=config.APP_BASE_URL, help="Application base URL")
    parser.add_argument("--work-dir", default=config.WORK_DIR, help="Directory the application is cloned into")
    parser.add_argument("--ready-timeout", type=float, default=config.READY_TIMEOUT_SECONDS,
                        help="Seconds to wait for the health endpoint (0 waits forever)")
    parser.add_argument("--skip-install", action="store_true", help="Do not run sdk install for the JDKs")
    return parser.parse_args(argv)

class DemoRun:
    """One pass through the upgrade sequence, accumulating samples into a single ResultsMatrix."""

    def __init__(self, demo: UpgradeDemo, base_url, ready_timeout=None, matrix=None):
        self.demo = demo
        self.base_url = base_url
        self.ready_timeout = ready_timeout or None
        self.matrix = matrix if matrix is not None else ResultsMatrix()
        self.spring_version = INITIAL_SPRING_VERSION

    def validate(self, variant=Variant.STANDARD):
        descriptor = RunDescriptor(self.demo.java_version, self.spring_version, Variant(variant).value)
        return record_and_show(
            self.matrix,
            descriptor,
            self.base_url,
            poll_interval_seconds=config.POLL_INTERVAL_SECONDS,
            timeout_seconds=self.ready_timeout,
            request_timeout=config.REQUEST_TIMEOUT_SECONDS,
            stream=self.demo.stream,
        )

    def start_validate_stop(self, variant=Variant.STANDARD):
        self.demo.start_app(variant)
        self.demo.talking_point()
        try:
            self.validate(variant)
        finally:
            self.demo.talking_point()
            self.demo.stop_app()
        self.demo.talking_point()

    def upgrade(self):
        self.demo.rewrite_application()
        self.demo.talking_point()

    def run(self):
        self.demo.init_workspace()
        self.demo.use_java(JAVA_8)
        self.demo.talking_point()
        self.demo.clone_app()
        self.demo.talking_point()
        self.start_validate_stop()

        for java_version in JAVA_UPGRADES:
            self.upgrade()
            self.demo.use_java(java_version)
            self.demo.talking_point()
            self.start_validate_stop()

        for spring_version in SPRING_UPGRADES:
            self.upgrade()
            self.spring_version = spring_version
            self.start_validate_stop()

        show_validation_table(self.matrix, stream=self.demo.stream, title="Final Validation Summary")
        return self.matrix

def main(argv=None):
    args = parse_args(argv)
    demo = UpgradeDemo(
        work_dir=args.work_dir,
        jar_name=config.JAR_NAME,
        sdkman_dir=config.SDKMAN_DIR,
        repo_url=config.APP_REPO_URL,
        prompt_timeout=config.PROMPT_TIMEOUT,
    )
    try:
        check_dependencies(REQUIRED_TOOLS)
        demo.sync_vendored()
        if config.METRICS_PORT:
            start_http_server(config.METRICS_PORT)
            logger.info(f"Prometheus metrics on :{config.METRICS_PORT}/metrics")
        if not args.skip_install:
            demo.install_java(JAVA_8, JAVA_11, JAVA_17, JAVA_23)
        DemoRun(demo, args.url, ready_timeout=args.ready_timeout).run()
    except (UpgradeDemoError, subprocess.SubprocessError) as e:
        logger.error(f"Demo aborted: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted, stopping application")
        demo.stop_app()
        sys.exit(1)

if __name__ == "__main__":
    main()
