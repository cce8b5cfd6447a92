"""Base services container for dependency injection."""

from config import Config
from db.manager import DatabaseManager


class Services:
    """Container for all application services.

    This class provides a centralized way to access all services and makes
    it easy to inject mock services for testing.

    The keyword table and everything built on it (engine, feedback,
    lifecycle) are created on first use, since they need the categories to
    be seeded. Call ``reload_keywords()`` after changing categories.

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
    """

    def __init__(self, config: Config, db_manager=None):
        """Initialize services with configuration.

        Args:
            config: Config object containing application configuration.
            db_manager: Optional database manager for dependency injection (testing).
                       If None, creates DatabaseManager from config.
        """
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)

        # Lazy import to avoid circular dependencies
        from services.users import UserService
        from services.categories import CategoryService
        from services.expenses import ExpenseService
        from services.learned_weights import LearnedWeightService

        self.users = UserService(self.db_manager)
        self.categories = CategoryService(self.db_manager)
        self.expenses = ExpenseService(self.db_manager)
        self.learned_weights = LearnedWeightService(
            self.db_manager, max_retries=config.max_write_retries
        )

        self._keyword_table = None
        self._inference = None
        self._feedback = None
        self._lifecycle = None

    @property
    def keyword_table(self):
        """KeywordTable built from the categories currently in the database.

        Raises:
            UnresolvableCategory: If no active categories are loaded.
        """
        if self._keyword_table is None:
            from categorization.keywords import KeywordTable

            self._keyword_table = KeywordTable(
                self.categories.find_all(),
                default_slug=self.config.default_category_slug,
                fold=self.config.fold_accents,
            )
        return self._keyword_table

    @property
    def inference(self):
        if self._inference is None:
            from categorization.engine import CategoryInferenceEngine

            self._inference = CategoryInferenceEngine(
                self.keyword_table,
                self.learned_weights,
                smoothing_constant=self.config.smoothing_constant,
            )
        return self._inference

    @property
    def feedback(self):
        if self._feedback is None:
            from categorization.feedback import LearningFeedbackService

            self._feedback = LearningFeedbackService(
                self.learned_weights, fold=self.config.fold_accents
            )
        return self._feedback

    @property
    def lifecycle(self):
        if self._lifecycle is None:
            from categorization.lifecycle import ExpenseLifecycle, LifecyclePolicy

            self._lifecycle = ExpenseLifecycle(
                self.expenses,
                self.feedback,
                self.inference,
                policy=LifecyclePolicy.from_config(self.config),
            )
        return self._lifecycle

    def reload_keywords(self):
        """Drop the cached keyword table and everything built on it."""
        self._keyword_table = None
        self._inference = None
        self._lifecycle = None
