from src.app import AppSettings, StudyContext, build_study_context

__all__ = ["main", "StudyContext"]


def main() -> StudyContext:
    """Entry point for UI hosts: load settings and build the study components."""
    settings = AppSettings.from_env()
    return build_study_context(settings)


if __name__ == "__main__":
    main()
