"""Allow ``python -m kubeprep``."""

from kubeprep.cli import app

if __name__ == "__main__":
    app(prog_name="kubeprep")
