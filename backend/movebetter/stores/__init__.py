from .base import EntityStore, OperationResult, SubscriptionState  # noqa: F401
from .access import PatientAccessStore  # noqa: F401
from .appointments import AppointmentStore  # noqa: F401
from .clinical import EvolutionStore, MedicalRecordStore, PreEvaluationStore  # noqa: F401
from .financial import FinancialCategoryStore, FinancialTransactionStore  # noqa: F401
from .packages import CreditCardRateStore, PackageStore, PatientPackageStore, ProposalStore  # noqa: F401
from .patients import PatientStore  # noqa: F401
from .plans import ExerciseStore, PlanExerciseStore, TreatmentPlanStore  # noqa: F401
