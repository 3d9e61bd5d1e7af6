#!/usr/bin/env python3
"""
Validation script for Training Manager.

This script checks that all dependencies are installed and runs a complete
reconciliation against the in-memory Galaxy backend, without contacting any
Galaxy server.
"""

import sys
import importlib
from datetime import date
from pathlib import Path

def check_dependency(package_name, import_name=None):
    """Check if a package/module can be imported."""
    if import_name is None:
        import_name = package_name

    try:
        importlib.import_module(import_name)
        return True, f"✓ {package_name} available"
    except ImportError as e:
        return False, f"✗ {package_name} missing: {e}"

def validate_dependencies():
    """Validate all required dependencies."""
    print("=== Dependency Validation ===")

    dependencies = [
        ("PyYAML", "yaml"),
        ("cryptography", "cryptography"),
        ("tomllib (Python 3.11+)", "tomllib"),
    ]

    all_ok = True
    for pkg_name, import_name in dependencies:
        ok, message = check_dependency(pkg_name, import_name)
        print(f"  {message}")
        if not ok:
            all_ok = False

    return all_ok

def validate_core_modules():
    """Validate core application modules."""
    print("\n=== Core Module Validation ===")

    modules = [
        "training_manager.types",
        "training_manager.config",
        "training_manager.schedule",
        "training_manager.logging_setup",
        "training_manager.galaxy.base",
        "training_manager.galaxy.client",
        "training_manager.galaxy.api",
        "training_manager.galaxy.memory",
        "training_manager.manager",
        "training_manager.main",
    ]

    all_ok = True
    for module in modules:
        ok, message = check_dependency(module, module)
        print(f"  {message}")
        if not ok:
            all_ok = False

    return all_ok

def validate_functionality():
    """Run the example schedule against an in-memory Galaxy."""
    print("\n=== Functionality Validation ===")

    try:
        from training_manager.schedule import read_config
        example = Path(__file__).parent / "schedule.example.toml"
        config = read_config(str(example))
        print("  ✓ Schedule parsing")

        from training_manager.galaxy import InMemoryGalaxy
        from training_manager.types import User
        galaxy = InMemoryGalaxy(users=[
            User.new("u1", "alice@example.com"),
            User.new("u2", "bob@example.com"),
            User.new("u3", "charlie@example.com"),
        ])
        print("  ✓ In-memory Galaxy backend")

        from training_manager.manager import TrainingManager
        stats = TrainingManager(galaxy).apply_config(config, today=date(2023, 3, 1))
        if stats['groups_updated'] != 2 or stats['groups_created'] != 2 or stats['roles_created'] != 1:
            print(f"  ✗ Unexpected reconciliation result: {stats}")
            return False
        print("  ✓ Reconciliation engine")

        return True

    except Exception as e:
        print(f"  ✗ Functionality test failed: {e}")
        return False

def validate_cli():
    """Validate command-line interface."""
    print("\n=== CLI Validation ===")

    try:
        import subprocess

        result = subprocess.run([sys.executable, "-m", "training_manager.main", "--help"],
                              capture_output=True, text=True)
        if result.returncode == 0:
            print("  ✓ Help command working")
        else:
            print("  ✗ Help command failed")
            return False

        result = subprocess.run([sys.executable, "-m", "training_manager.main"],
                              capture_output=True, text=True)
        if result.returncode == 0 and "Usage" in result.stdout:
            print("  ✓ Usage printed without a schedule file")
        else:
            print("  ✗ Missing schedule file not handled")
            return False

        return True

    except Exception as e:
        print(f"  ✗ CLI validation failed: {e}")
        return False

def main():
    """Run all validations."""
    print("Training Manager - Installation Validation")
    print("=" * 50)

    all_validations = [
        validate_dependencies(),
        validate_core_modules(),
        validate_functionality(),
        validate_cli(),
    ]

    print("\n=== Summary ===")
    if all(all_validations):
        print("✓ All validations passed!")
        print("✓ Training Manager is ready for use")
        print("\nNext steps:")
        print("  1. Copy settings.example.yaml to settings.yaml and export GALAXY_ADMIN_API_KEY")
        print("  2. Test with: training-manager --health-check schedule.toml")
        print("  3. Preview with: training-manager --dry-run schedule.toml")
        print("  4. Run sync: training-manager schedule.toml")
        return 0
    else:
        print("✗ Some validations failed!")
        print("Please resolve the issues above before using the application.")
        return 1

if __name__ == "__main__":
    sys.exit(main())
