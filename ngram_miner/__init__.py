# N-gram Miner
from .config import DEFAULT_STOP_WORDS, MinerConfig, config_from_form, load_config
from .exceptions import ConfigurationError, InputFileError
from .models import Category, NgramAggregate, QueryRecord, Recommendation
from .ngram_generator import tokenize, extract_ngrams, aggregate_ngrams, merge_aggregates
from .metrics import derive_metrics
from .suggestions import RecommendationSet, classify_aggregates
from .analyzer import AnalysisResult, run_analysis
