import structlog
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger(__name__)


class PipelineStep:
    def __init__(self, name, action):
        self.name = name
        self.action = action


class TransactionalPipeline:
    """
    Runs named steps in order inside one database transaction.

    There are no per-step compensations: any exception rolls the whole
    transaction back, so no step's writes survive a later failure.
    """

    def __init__(self):
        self.steps = []

    def add_step(self, name: str, action):
        """Builder pattern to add a step."""
        self.steps.append(PipelineStep(name, action))
        return self

    async def execute(self, db: AsyncSession, ctx):
        step = None
        try:
            async with db.begin():
                for step in self.steps:
                    await step.action(db, ctx)
        except Exception as e:
            logger.warning("pipeline_rolled_back", step=step.name if step else None, error=str(e))
            raise
        return ctx
