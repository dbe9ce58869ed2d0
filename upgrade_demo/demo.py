import os
import shlex
import shutil
import subprocess
import sys
import time
from enum import Enum

from upgrade_demo.config import logger
from upgrade_demo.errors import MissingDependency
from upgrade_demo.logging import demo_logger
from upgrade_demo.validation import display_message

REQUIRED_TOOLS = ("git", "mvnd", "advisor")
CDS_ARCHIVE = "application.jsa"
EXTRACT_DIR = "application"

class Variant(str, Enum):
    STANDARD = "standard"
    AOT = "aot"
    EXPLODED = "exploded"
    CDS = "cds"
    AOT_CDS = "aot-cds"

def check_dependencies(tools=REQUIRED_TOOLS):
    for tool in tools:
        if shutil.which(tool) is None:
            raise MissingDependency(tool)

def java_home(version: str, sdkman_dir: str) -> str:
    return os.path.join(sdkman_dir, "candidates", "java", version)

def java_env(version: str, sdkman_dir: str, base_env=None) -> dict:
    """
    Environment equivalent to `sdk use java <version>`: JAVA_HOME points at the SDKMAN
    candidate and its bin directory comes first on PATH.
    """
    env = dict(os.environ if base_env is None else base_env)
    home = java_home(version, sdkman_dir)
    env["JAVA_HOME"] = home
    env["PATH"] = os.pathsep.join([os.path.join(home, "bin"), env.get("PATH", "")])
    return env

def start_command(variant: Variant, jar_name: str) -> list:
    """java command line for launching the packaged application as the given variant."""
    variant = Variant(variant)
    if variant == Variant.STANDARD:
        return ["java", "-jar", f"./target/{jar_name}"]
    if variant == Variant.AOT:
        return ["java", "-Dspring.aot.enabled=true", "-jar", f"./target/{jar_name}"]
    if variant == Variant.EXPLODED:
        return ["java", "-jar", f"./{EXTRACT_DIR}/{jar_name}"]
    if variant == Variant.CDS:
        return ["java", f"-XX:SharedArchiveFile={CDS_ARCHIVE}", "-jar", f"{EXTRACT_DIR}/{jar_name}"]
    return ["java", "-Dspring.aot.enabled=true", f"-XX:SharedArchiveFile={CDS_ARCHIVE}",
            "-jar", f"{EXTRACT_DIR}/{jar_name}"]

class UpgradeDemo:
    """
    Drives the external tools of the demo: SDKMAN, git, the build tools, the java launcher
    and the Spring Application Advisor. Every command is echoed before it runs and a
    non-zero exit raises subprocess.CalledProcessError.
    """

    def __init__(self, work_dir, jar_name, sdkman_dir, repo_url, prompt_timeout=0, stream=None):
        self.work_dir = os.path.abspath(work_dir)
        self.jar_name = jar_name
        self.sdkman_dir = sdkman_dir
        self.repo_url = repo_url
        self.prompt_timeout = prompt_timeout
        self.stream = stream or sys.stdout
        self.env = dict(os.environ)
        self.java_version = None
        self.process = None

    def say(self, message):
        display_message(message, stream=self.stream)

    def echo(self, cmd):
        self.stream.write(f"$ {shlex.join(cmd)}\n")
        self.stream.flush()

    def run(self, cmd, cwd=None, **kwargs):
        self.echo(cmd)
        return subprocess.run(cmd, cwd=cwd or self.work_dir, env=self.env, check=True, **kwargs)

    def talking_point(self):
        if self.prompt_timeout:
            time.sleep(self.prompt_timeout)

    # --- SDKMAN ---

    def sdk(self, *args, input=None):
        init_script = os.path.join(self.sdkman_dir, "bin", "sdkman-init.sh")
        if not os.path.isfile(init_script):
            raise MissingDependency("SDKMAN")
        script = f"source {shlex.quote(init_script)} && sdk {shlex.join(args)}"
        return self.run(["bash", "-c", script], cwd=os.getcwd(), input=input, text=True)

    def install_java(self, *versions):
        self.sdk("update")
        for version in versions:
            # decline "set as default" so the user's default JDK is left alone
            self.sdk("install", "java", version, input="n\n")

    def use_java(self, version):
        self.say(f"Use Java {version}")
        self.env = java_env(version, self.sdkman_dir, base_env=self.env)
        self.java_version = version
        self.run(["java", "-version"])

    # --- Workspace & build ---

    def init_workspace(self):
        shutil.rmtree(self.work_dir, ignore_errors=True)
        os.makedirs(self.work_dir)
        logger.info(f"Workspace ready at {self.work_dir}")

    def sync_vendored(self, project_dir=None):
        project_dir = project_dir or os.getcwd()
        if os.path.isfile(os.path.join(project_dir, "vendir.yml")):
            self.run(["vendir", "sync"], cwd=project_dir)

    def clone_app(self):
        self.say("Clone the Spring Pet Clinic")
        self.run(["git", "clone", self.repo_url, "./"])

    def package_app(self):
        self.run(["mvnd", "-q", "clean", "package", "-DskipTests"])

    def aot_processing(self):
        self.say("Package using AOT Processing")
        self.run(["./mvnw", "-q", "-Pnative", "clean", "package", "-DskipTests"])
        self.say("Done")

    def extract_jar(self):
        self.say("Extract the Spring Boot application for efficiency (java -Djarmode=tools)")
        self.run(["java", "-Djarmode=tools", "-jar", f"./target/{self.jar_name}",
                  "extract", "--destination", EXTRACT_DIR])
        self.say("Done")

    def remove_extracted(self):
        shutil.rmtree(os.path.join(self.work_dir, EXTRACT_DIR), ignore_errors=True)

    def create_cds_archive(self):
        self.say("Create a CDS archive")
        result = self.run(
            ["java", f"-XX:ArchiveClassesAtExit={CDS_ARCHIVE}", "-Dspring.context.exit=onRefresh",
             "-jar", f"{EXTRACT_DIR}/{self.jar_name}"],
            stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True,
        )
        for line in result.stdout.splitlines():
            if "[warning][cds]" not in line:
                self.stream.write(line + "\n")
        self.say("Done")

    def rewrite_application(self):
        self.say("Spring Application Advisor")
        self.run(["advisor", "build-config", "get"])
        self.run(["advisor", "upgrade-plan", "get"])
        self.run(["advisor", "upgrade-plan", "apply"])

    # --- Application process ---

    def start_app(self, variant=Variant.STANDARD, log_path=None):
        """
        Launches the application in the background and returns the process.
        Only one instance runs at a time; stop_app() must be called before the next start.
        """
        if self.process is not None and self.process.poll() is None:
            raise RuntimeError(f"Application already running (pid {self.process.pid})")
        variant = Variant(variant)
        if variant == Variant.STANDARD:
            self.say("Start the Spring Boot application (with java -jar)")
            self.package_app()
        else:
            self.say(f"Start the Spring Boot application ({variant.value})")
        cmd = start_command(variant, self.jar_name)
        self.echo(cmd)
        if log_path:
            with open(log_path, "wb") as log:
                self.process = subprocess.Popen(cmd, cwd=self.work_dir, env=self.env,
                                                stdout=log, stderr=subprocess.STDOUT)
        else:
            self.process = subprocess.Popen(cmd, cwd=self.work_dir, env=self.env)
        demo_logger.log_app_started(variant.value, cmd, self.process.pid)
        return self.process

    def stop_app(self, timeout=30):
        self.say("Stop the Spring Boot application")
        if self.process is None:
            logger.warning("No application process to stop")
            return None
        process, self.process = self.process, None
        process.kill()
        returncode = process.wait(timeout=timeout)
        demo_logger.log_app_stopped(process.pid, returncode)
        return returncode
