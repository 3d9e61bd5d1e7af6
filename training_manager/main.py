"""
Main orchestrator for Training Manager.

Loads settings and the training schedule, sets up logging, connects to Galaxy
and runs one reconciliation. Meant to be invoked periodically by an external
scheduler (cron, a Kubernetes CronJob, ...); nothing is kept between runs.
"""

import sys
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from training_manager.config import load_config, ConfigurationError
from training_manager.galaxy import GalaxyAPIError, GalaxyRepository, init_galaxy
from training_manager.logging_setup import setup_logging
from training_manager.manager import ReconciliationError, TrainingManager
from training_manager.schedule import TrainingConfig, read_config

logger = logging.getLogger(__name__)

USAGE = "Usage: training-manager <config-file>"

EXIT_OK = 0
EXIT_UNHEALTHY = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_GALAXY_ERROR = 3
EXIT_RECONCILIATION_ERROR = 4
EXIT_UNEXPECTED_ERROR = 5


class TrainingSync:
    """
    Runs one reconciliation of Galaxy against a training schedule.

    Maps every failure category to a distinct process exit code.
    """

    def __init__(self, schedule_path: Optional[str], settings_path: Optional[str] = None,
                 galaxy: Optional[GalaxyRepository] = None):
        """
        Initialize the sync run.

        Args:
            schedule_path: Path to the TOML schedule document
            settings_path: Path to the YAML settings file
            galaxy: Repository to use instead of the HTTP Galaxy client
        """
        self.schedule_path = schedule_path
        self.settings_path = settings_path
        self.galaxy = galaxy
        self.settings = None
        self.schedule = None
        self.stats = {}

    def run(self, dry_run: bool = False) -> int:
        """
        Run the complete reconciliation.

        Args:
            dry_run: Only compute and log the plan

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self._load_settings()
            setup_logging(self.settings['logging'])

            logger.info("Starting Training Manager")

            # Parse the schedule before any remote call
            self.schedule = self._load_schedule()

            manager = self._create_manager()
            if dry_run:
                manager.dry_run(self.schedule)
                logger.info("Dry run completed, no changes made")
                return EXIT_OK

            self.stats = manager.apply_config(self.schedule)
            self._log_sync_summary()
            logger.info("Sync completed successfully")
            return EXIT_OK

        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return EXIT_CONFIGURATION_ERROR
        except GalaxyAPIError as e:
            logger.error(f"Galaxy API error: {e}")
            return EXIT_GALAXY_ERROR
        except ReconciliationError as e:
            logger.error(f"Reconciliation error: {e}")
            return EXIT_RECONCILIATION_ERROR
        except Exception as e:
            logger.error(f"Unexpected error: {e}", exc_info=True)
            return EXIT_UNEXPECTED_ERROR

    def _load_settings(self):
        self.settings = load_config(self.settings_path)

    def _load_schedule(self) -> TrainingConfig:
        return read_config(self.schedule_path)

    def _create_galaxy(self) -> GalaxyRepository:
        if self.galaxy is None:
            self.galaxy = init_galaxy(self.settings['galaxy'])
        return self.galaxy

    def _create_manager(self) -> TrainingManager:
        training = self.settings['training']
        return TrainingManager(
            self._create_galaxy(),
            role_name=training['role_name'],
            role_description=training['role_description'],
            max_workers=training['max_workers'],
        )

    def _log_sync_summary(self):
        """Log final run statistics."""
        stats = self.stats

        runtime_str = f"{stats['runtime_seconds']:.2f} seconds"
        if stats['runtime_seconds'] > 60:
            minutes = int(stats['runtime_seconds'] // 60)
            seconds = stats['runtime_seconds'] % 60
            runtime_str = f"{minutes}m {seconds:.1f}s"

        logger.info("=== Sync Summary ===")
        logger.info(f"Total runtime: {runtime_str}")
        logger.info(f"Roles created: {stats['roles_created']}")
        logger.info(f"Groups created: {stats['groups_created']}")
        logger.info(f"Groups updated: {stats['groups_updated']}")
        logger.info(f"Groups in training: {stats['groups_active']}")
        logger.info(f"Memberships assigned: {stats['users_assigned']}")

    def health_check(self) -> Dict[str, Any]:
        """
        Check settings, the schedule document (when given) and Galaxy connectivity.

        Returns:
            Dictionary containing health status and details
        """
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now().isoformat(),
            'checks': {}
        }

        try:
            self._load_settings()
            health_status['checks']['settings'] = {
                'status': 'pass',
                'message': 'Settings loaded successfully'
            }
        except ConfigurationError as e:
            health_status['checks']['settings'] = {
                'status': 'fail',
                'message': f'Settings error: {e}'
            }
            health_status['status'] = 'unhealthy'

        if self.schedule_path:
            try:
                config = self._load_schedule()
                health_status['checks']['schedule'] = {
                    'status': 'pass',
                    'message': f'Schedule parsed: {len(config.groups)} groups'
                }
            except ConfigurationError as e:
                health_status['checks']['schedule'] = {
                    'status': 'fail',
                    'message': f'Schedule error: {e}'
                }
                health_status['status'] = 'unhealthy'
        else:
            health_status['checks']['schedule'] = {
                'status': 'skip',
                'message': 'No schedule file given'
            }

        if self.settings:
            try:
                roles = self._create_galaxy().get_roles()
                health_status['checks']['galaxy'] = {
                    'status': 'pass',
                    'message': f'Galaxy reachable: {len(roles)} roles'
                }
            except GalaxyAPIError as e:
                health_status['checks']['galaxy'] = {
                    'status': 'fail',
                    'message': f'Galaxy request failed: {e}'
                }
                health_status['status'] = 'unhealthy'

        return health_status


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog='training-manager',
        description='Sync Galaxy group membership and training roles with a schedule',
    )
    parser.add_argument('config_files', nargs='*', metavar='config-file',
                        help='Path to the TOML training schedule')
    parser.add_argument('--settings', '-s', help='Path to the YAML settings file')
    parser.add_argument('--dry-run', action='store_true',
                        help='Show what would change without changing anything')
    parser.add_argument('--health-check', action='store_true',
                        help='Check settings and Galaxy connectivity instead of syncing')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parser = build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(USAGE)
        return EXIT_OK

    if args.health_check:
        if len(args.config_files) > 1:
            print(USAGE)
            return EXIT_OK
        schedule_path = args.config_files[0] if args.config_files else None
        health_status = TrainingSync(schedule_path, args.settings).health_check()
        print(json.dumps(health_status, indent=2))
        return EXIT_OK if health_status['status'] == 'healthy' else EXIT_UNHEALTHY

    if len(args.config_files) != 1:
        print(USAGE)
        return EXIT_OK

    return TrainingSync(args.config_files[0], args.settings).run(dry_run=args.dry_run)


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
