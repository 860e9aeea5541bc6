"""Token scanner application."""

import asyncio
import logging
import signal
import sys
from typing import Dict, List, Optional
import os
from dotenv import load_dotenv

load_dotenv()

from .core.errors import PreconditionUnmet
from .core.models import TokenRecord
from .data.fetch_client import FetchClient
from .data.providers import BirdeyeAdapter, DexScreenerAdapter, HeliusAdapter
from .monitoring.monitor import MonitoringEngine
from .paper.tracker import PaperTracker
from .scanner.aggregator import Aggregator
from .scanner.scheduler import ScanScheduler
from .scanner.service import TokenScanner
from .scoring.llm_scorer import LLMScorer

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('token_scanner.log'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def format_number(num: float) -> str:
    """Compact K/M rendering for table output."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return f"{num:.0f}"


class ScannerApp:
    """Wires the scan pipeline, scheduler and paper tracker together."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize scanner application."""
        defaults = self._default_config()
        if config:
            for key, val in config.items():
                if isinstance(val, dict) and key in defaults and isinstance(defaults[key], dict):
                    for sub_key, sub_val in val.items():
                        if isinstance(sub_val, dict) and isinstance(defaults[key].get(sub_key), dict):
                            defaults[key][sub_key].update(sub_val)
                        else:
                            defaults[key][sub_key] = sub_val
                else:
                    defaults[key] = val
        self.config = defaults
        self._stopped = asyncio.Event()
        self._stop_task: Optional[asyncio.Future] = None

        self._init_components()
        logger.info("Scanner app initialized")

    def _default_config(self) -> Dict:
        """Default configuration."""
        return {
            'providers': {
                'dexscreener': {
                    'base_url': 'https://api.dexscreener.com/latest',
                },
                'birdeye': {
                    'base_url': 'https://public-api.birdeye.so/defi',
                    'api_key': os.getenv('BIRDEYE_API_KEY'),
                },
                'helius': {
                    'base_url': 'https://mainnet.helius-rpc.com',
                    'api_key': os.getenv('HELIUS_API_KEY'),
                },
            },
            'fetch': {
                'timeout': 10,
                'max_retries': 2,
                'cache_ttl_ms': 60_000,
            },
            'scoring': {
                'enabled': True,
                'api_key': os.getenv('OPENAI_API_KEY'),
                'model': 'gpt-3.5-turbo',
                'max_retries': 1,
                'cache_ttl_ms': 0,  # completions are never cached
            },
            'scanner': {
                'min_liquidity': 50_000,
                'volume_mcap_ratio': 0.5,
                'check_interval_ms': 5000,
                'required_providers': ['dexscreener', 'birdeye'],
            },
            'paper': {
                'max_open_positions': 5,
                'default_amount_usd': 100.0,
            },
            'display': {
                'top_n': 10,
            },
        }

    def _init_components(self):
        """Initialize all components."""
        fetch_cfg = self.config['fetch']
        self.monitor = MonitoringEngine()
        self.fetch_client = FetchClient(monitor=self.monitor, timeout=fetch_cfg['timeout'])

        provider_cfg = self.config['providers']
        retry_cfg = {
            'max_retries': fetch_cfg['max_retries'],
            'cache_ttl_ms': fetch_cfg['cache_ttl_ms'],
        }
        # Adapter order decides which provider wins on duplicate addresses
        self.adapters = [
            DexScreenerAdapter(self.fetch_client, {**retry_cfg, **provider_cfg['dexscreener']}),
            BirdeyeAdapter(self.fetch_client, {**retry_cfg, **provider_cfg['birdeye']}),
            HeliusAdapter(self.fetch_client, {**retry_cfg, **provider_cfg['helius']}),
        ]

        scanner_cfg = self.config['scanner']
        self.aggregator = Aggregator({
            'min_liquidity': scanner_cfg['min_liquidity'],
            'volume_mcap_ratio': scanner_cfg['volume_mcap_ratio'],
        })
        self.scorer = LLMScorer(self.fetch_client, self.config['scoring'])
        self.scanner = TokenScanner(self.adapters, self.aggregator, self.scorer, self.monitor)
        self.scheduler = ScanScheduler(
            self.scanner,
            connection_status=lambda: self.monitor.connection_status,
            config={
                'check_interval_ms': scanner_cfg['check_interval_ms'],
                'required_providers': scanner_cfg['required_providers'],
            },
            on_result=self._handle_result,
        )

        paper_cfg = self.config['paper']
        self.tracker = PaperTracker(
            max_open_positions=paper_cfg['max_open_positions'],
            default_amount_usd=paper_cfg['default_amount_usd'],
        )

    async def start(self):
        """Test provider connections, start the scheduler and run until stopped."""
        logger.info("Starting token scanner...")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._signal_handler, sig)
            except NotImplementedError:
                pass

        await self.scanner.check_connections()
        await self.scheduler.start()
        await self._stopped.wait()

    async def stop(self):
        """Stop the scheduler and release HTTP resources."""
        try:
            logger.info("Stopping token scanner...")
            await self.scheduler.stop()
            await self.fetch_client.close()
            logger.info("Token scanner stopped")
        except Exception as e:
            logger.error(f"Error stopping token scanner: {e}")
        finally:
            self._stopped.set()

    def _handle_result(self, result: List[TokenRecord]):
        """Mark paper positions and render the ranked result."""
        self.tracker.mark_to_market(result)
        self.render(result)

    def render(self, result: List[TokenRecord]):
        top_n = self.config['display']['top_n']
        ranked = self.aggregator.rank(result)[:top_n]
        if not ranked:
            logger.info("No tokens met the scan criteria")
            return

        lines = [f"{'SYMBOL':<12}{'PRICE':>14}{'24H%':>9}{'VOLUME':>10}{'LIQ':>10}{'MCAP':>10}{'SCORE':>7}"]
        for r in ranked:
            lines.append(
                f"{r.symbol[:11]:<12}{r.price:>14.6f}{r.price_change_24h:>8.2f}%"
                f"{format_number(r.volume_24h):>10}{format_number(r.liquidity):>10}"
                f"{format_number(r.market_cap):>10}{r.score:>5}/100"
            )
        logger.info("Scan results:\n" + "\n".join(lines))

    def _signal_handler(self, signum):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        if self._stop_task is None or self._stop_task.done():
            self._stop_task = asyncio.ensure_future(self.stop())

    def get_status(self) -> Dict:
        """Get application status."""
        return {
            'scheduler': self.scheduler.get_status(),
            'connections': self.monitor.connection_status,
            'failed_requests': self.monitor.exhausted_count,
            'cache_entries': self.fetch_client.cache_size(),
            'open_positions': len(self.tracker.get_open_positions()),
            'performance': self.tracker.performance(),
        }


def _config_from_env() -> Dict:
    """Build config dict from environment variables."""
    config: Dict = {}

    # Providers
    dex_url = os.getenv('DEXSCREENER_BASE_URL', '').strip()
    owner = os.getenv('HELIUS_OWNER_ADDRESS', '').strip()
    if dex_url or owner:
        config['providers'] = {}
        if dex_url:
            config['providers']['dexscreener'] = {'base_url': dex_url}
        if owner:
            config['providers']['helius'] = {'owner_address': owner}

    # Fetch
    max_retries = os.getenv('FETCH_MAX_RETRIES', '').strip()
    cache_ttl = os.getenv('FETCH_CACHE_TTL_MS', '').strip()
    if max_retries or cache_ttl:
        config['fetch'] = {}
        if max_retries:
            config['fetch']['max_retries'] = int(max_retries)
        if cache_ttl:
            config['fetch']['cache_ttl_ms'] = float(cache_ttl)

    # Scanner
    min_liquidity = os.getenv('SCANNER_MIN_LIQUIDITY', '').strip()
    ratio = os.getenv('SCANNER_VOLUME_MCAP_RATIO', '').strip()
    interval = os.getenv('SCANNER_CHECK_INTERVAL_MS', '').strip()
    required = os.getenv('SCANNER_REQUIRED_PROVIDERS', '').strip()
    if any([min_liquidity, ratio, interval, required]):
        config['scanner'] = {}
        if min_liquidity:
            config['scanner']['min_liquidity'] = float(min_liquidity)
        if ratio:
            config['scanner']['volume_mcap_ratio'] = float(ratio)
        if interval:
            config['scanner']['check_interval_ms'] = int(interval)
        if required:
            config['scanner']['required_providers'] = [p.strip() for p in required.split(',') if p.strip()]

    # Scoring
    scoring_enabled = os.getenv('SCORING_ENABLED', '').strip().lower()
    model = os.getenv('OPENAI_MODEL', '').strip()
    if scoring_enabled or model:
        config['scoring'] = {}
        if scoring_enabled in ('0', 'false', 'no'):
            config['scoring']['enabled'] = False
        elif scoring_enabled in ('1', 'true', 'yes'):
            config['scoring']['enabled'] = True
        if model:
            config['scoring']['model'] = model

    return config


async def main() -> int:
    """Main entry point."""
    config = _config_from_env()

    app = ScannerApp(config if config else None)

    try:
        await app.start()
    except PreconditionUnmet as e:
        logger.error(f"Cannot start scanner: {e}")
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        return 1
    finally:
        await app.stop()
    return 0


def run():
    configure_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
