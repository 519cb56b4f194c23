#!/usr/bin/env python3
"""CLI entry point for managing registered faces and checking images."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from face_enroll.config_manager import ConfigManager
from face_enroll.face_compare import cosine_similarity, euclidean_distance
from face_enroll.face_database import FaceStore, JsonFileKeyValueStore
from face_enroll.face_quality import ImageQualityAssessor, feedback_message


class FaceStoreManager:
    """Store management utilities, the command line twin of the users screen"""

    def __init__(self, config: ConfigManager, database_path: Optional[str] = None):
        if database_path:
            config.set("storage.path", database_path)
        self.config = config
        self.store = FaceStore(
            JsonFileKeyValueStore(config.get("storage.path")),
            key=config.get("storage.key", "registered_faces"),
        )

    def list_people(self) -> int:
        faces = self.store.list_faces()
        if not faces:
            print("\n📝 Database is empty")
            return 0

        print(f"\n👥 People in database ({len(faces)} total):")
        for face in faces:
            count = len(face.embeddings)
            registered = face.registered_at.strftime("%Y-%m-%d %H:%M")
            print(f"  • {face.name}: {count} embedding{'s' if count != 1 else ''} (registered {registered})")
        return 0

    def show_statistics(self) -> int:
        self.store.print_statistics()
        return 0

    def remove_person(self, name: str) -> int:
        if self.store.delete_face(name):
            print(f"✅ Removed {name} from database")
            return 0
        print(f"❌ Person '{name}' not found in database")
        return 1

    def clear_database(self, assume_yes: bool = False) -> int:
        if not assume_yes:
            confirm = input("⚠️  Are you sure you want to clear the database? (y/N): ")
            if confirm.lower() not in ("y", "yes"):
                print("❌ Clear operation cancelled")
                return 1
        self.store.clear_all()
        print("✅ Database cleared successfully!")
        return 0

    def check_quality(self, image_paths: List[str]) -> int:
        assessor = ImageQualityAssessor.from_config(self.config)
        failures = 0
        for path in image_paths:
            result = assessor.assess(path)
            marker = "✅" if result.is_good else "❌"
            print(
                f"{marker} {path}: {result.issue.value} "
                f"(brightness={result.brightness:.1f}, sharpness={result.sharpness:.1f}) "
                f"- {feedback_message(result)}"
            )
            if not result.is_good:
                failures += 1
        return 1 if failures else 0

    def compare_people(self, name_a: str, name_b: str) -> int:
        face_a = self.store.get(name_a)
        face_b = self.store.get(name_b)
        for name, face in ((name_a, face_a), (name_b, face_b)):
            if face is None:
                print(f"❌ Person '{name}' not found in database")
                return 1
            if not face.embeddings:
                print(f"❌ Person '{name}' has no embeddings")
                return 1

        similarity = cosine_similarity(face_a.average_embedding, face_b.average_embedding)
        distance = euclidean_distance(face_a.average_embedding, face_b.average_embedding)
        threshold = float(self.config.get("recognition.threshold", 0.8))
        verdict = "same person" if similarity >= threshold else "different people"
        print(f"{name_a} vs {name_b}: similarity={similarity:.4f} distance={distance:.4f} -> {verdict}")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Face Enrollment - registered face management",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
Examples:
  face-enroll list                       # List registered people
  face-enroll stats                      # Show statistics
  face-enroll delete "person_name"       # Remove a person
  face-enroll clear --yes                # Remove everybody
  face-enroll quality img1.jpg img2.jpg  # Run the capture quality gate
  face-enroll similarity alice bob       # Compare two people
  face-enroll --config my.json config    # Show the effective configuration
        """,
    )
    parser.add_argument("--config", type=str, help="Configuration file path")
    parser.add_argument("--database", type=str, help="Face store file path (overrides config)")

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("list", help="List all people in the store")
    commands.add_parser("stats", help="Show store statistics")
    commands.add_parser("config", help="Show the effective configuration and validate it")

    delete = commands.add_parser("delete", help="Remove a person")
    delete.add_argument("name", type=str)

    clear = commands.add_parser("clear", help="Remove every person")
    clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    quality = commands.add_parser("quality", help="Check brightness and sharpness of images")
    quality.add_argument("images", nargs="+", type=str)

    similarity = commands.add_parser("similarity", help="Compare the average embeddings of two people")
    similarity.add_argument("name_a", type=str)
    similarity.add_argument("name_b", type=str)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ConfigManager(args.config)
    if args.command == "config":
        if args.database:
            config.set("storage.path", args.database)
        config.print_config()
        return 0 if config.validate_config() else 2

    if not config.validate_config():
        return 2

    manager = FaceStoreManager(config, args.database)

    if args.command == "delete":
        return manager.remove_person(args.name)
    if args.command == "clear":
        return manager.clear_database(args.yes)
    if args.command == "quality":
        return manager.check_quality(args.images)
    if args.command == "similarity":
        return manager.compare_people(args.name_a, args.name_b)
    if args.command == "list":
        return manager.list_people()
    return manager.show_statistics()


if __name__ == "__main__":
    sys.exit(main())
