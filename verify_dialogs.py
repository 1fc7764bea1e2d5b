import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from stage_engine.core.config import DialogConfig, configure_logging
from stage_engine.resources.database import DialogDatabase


def main(argv: list[str]) -> int:
    config_path = Path("dialog_config.json")
    config = DialogConfig.from_file(config_path) if config_path.exists() else DialogConfig()
    if argv:
        config.content_path = Path(argv[0])

    configure_logging(config.log_level)
    logger = logging.getLogger("DialogVerification")

    # Validation runs below, once per tree
    config.validate_on_load = False
    db = DialogDatabase(config.content_path, config)

    logger.info(f"Loading dialog content from {config.content_path}...")
    db.load_all()

    if not db.trees:
        logger.error("VERIFICATION FAILED: no dialog trees found.")
        return 1

    failed = []
    for name, tree in db.trees.items():
        report = tree.validate()
        if not report.is_valid:
            failed.append(name)

    if failed:
        logger.error(f"VERIFICATION FAILED: {len(failed)} invalid trees: {', '.join(failed)}")
        return 1

    logger.info(f"VERIFICATION SUCCESSFUL: {len(db.trees)} dialog trees loaded and validated.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
