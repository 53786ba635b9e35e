import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich import box

from polyengine.config import EngineConfig
from polyengine.engine import DecisionEngine
from polyengine.models import MarketOpportunity, Position, TradingDecision
from polyengine.news.service import NewsSignalService
from polyengine.news.sources import NewsApiProvider
from polyengine.providers.gamma import GammaMarketProvider
from polyengine.providers.spmc import SpmcIndexProvider, composition_from_spmc

load_dotenv()

app = typer.Typer()
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _load_positions(path: Optional[Path]) -> List[Position]:
    """Positions JSON: [{"market_id", "outcome_id", "amount", "avg_price"?, "title"?}]"""
    if path is None:
        return []
    raw = json.loads(path.read_text())
    return [
        Position(
            market_id=p["market_id"],
            outcome_id=p.get("outcome_id", "YES"),
            amount=Decimal(str(p["amount"])),
            avg_price=float(p.get("avg_price", 0)),
            title=p.get("title"),
        )
        for p in raw
    ]


def _build_engine(config: EngineConfig) -> DecisionEngine:
    news_source = config.news.source("NewsAPI")
    news_provider = None
    if news_source is not None and news_source.enabled:
        news_provider = NewsApiProvider.from_env(news_source, config.news.search_days_back)
    return DecisionEngine(
        config,
        market_provider=GammaMarketProvider(config.gamma_api_url),
        news_provider=news_provider,
        index_provider=SpmcIndexProvider(config.spmc_api_url),
    )


def _opportunity_table(opportunities: List[MarketOpportunity]) -> Table:
    table = Table(title="Opportunities", box=box.ROUNDED)
    table.add_column("Strategy", style="cyan")
    table.add_column("Market")
    table.add_column("Side")
    table.add_column("Outcome", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("Predicted", justify="right")
    table.add_column("Conf", justify="right")
    table.add_column("EV", justify="right", style="green")
    table.add_column("Risk", justify="right")
    for opp in opportunities:
        table.add_row(
            opp.strategy_name,
            opp.question[:50],
            opp.side,
            opp.outcome,
            f"{opp.current_price:.3f}",
            f"{opp.predicted_probability:.3f}",
            f"{opp.confidence * 100:.1f}%",
            f"{opp.expected_value:.2f}",
            f"{opp.risk_score:.2f}",
        )
    return table


def _decision_table(decisions: List[TradingDecision]) -> Table:
    table = Table(title="Decisions", box=box.ROUNDED)
    table.add_column("Verdict")
    table.add_column("Market")
    table.add_column("Side")
    table.add_column("Outcome", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Conf", justify="right")
    table.add_column("Reasoning")
    for d in decisions:
        verdict = "[green]TRADE[/green]" if d.should_trade else "[dim]SKIP[/dim]"
        table.add_row(
            verdict,
            d.market_id[:12],
            d.side,
            d.outcome,
            f"${d.size}",
            f"{d.confidence * 100:.1f}%",
            d.reasoning,
        )
    return table


@app.command()
def scan(
    positions: Optional[Path] = typer.Option(None, help="JSON file of open positions"),
    decide: bool = typer.Option(False, help="Evaluate opportunities into trading decisions"),
    available: Optional[float] = typer.Option(None, help="Free capital (index strategy)"),
    limit: int = 20,
    verbose: bool = False,
) -> None:
    """
    Scan markets with the strategies enabled in the environment
    """
    _setup_logging(verbose)
    config = EngineConfig.from_env()
    engine = _build_engine(config)
    held = _load_positions(positions)
    balance = Decimal(str(available)) if available is not None else None

    if decide:
        decisions = engine.decide(held, available_balance=balance)
        console.print(_decision_table(decisions[:limit]))
    else:
        opportunities = engine.scan(held, available_balance=balance)
        console.print(_opportunity_table(opportunities[:limit]))
    console.print(engine.stats.to_dict())


@app.command()
def news_signal(question: str, rules: Optional[str] = None, verbose: bool = False) -> None:
    """
    Fused news signal for a market question
    """
    _setup_logging(verbose)
    config = EngineConfig.from_env()
    provider = NewsApiProvider.from_env(config.news.source("NewsAPI"), config.news.search_days_back)
    service = NewsSignalService(provider, config.news)
    signal = service.get_market_signal(question, rules)

    console.print(f"[bold]{signal.signal.upper()}[/bold] ({signal.confidence * 100:.1f}% confidence)")
    table = Table(box=box.SIMPLE)
    table.add_column("Sentiment")
    table.add_column("Relevance", justify="right")
    table.add_column("Title")
    for article in signal.articles:
        table.add_row(article.sentiment, f"{article.relevance_score:.2f}", article.title)
    console.print(table)


@app.command()
def rebalance(
    index_file: Path,
    positions: Optional[Path] = typer.Option(None, help="JSON file of open positions"),
    available: float = typer.Option(0.0, help="Free capital"),
    verbose: bool = False,
) -> None:
    """
    Plan rebalance orders against an index composition JSON file
    """
    _setup_logging(verbose)
    config = EngineConfig.from_env()
    engine = DecisionEngine(config)

    data = json.loads(index_file.read_text())
    index = composition_from_spmc(str(data.get("id", index_file.stem)), data)
    result, orders = engine.plan_rebalance(index, _load_positions(positions), Decimal(str(available)))

    console.print(engine.calculator.allocation_summary(result.allocations))
    console.print(f"Needs rebalance: {result.needs_rebalance}")

    table = Table(title="Rebalance Orders", box=box.ROUNDED)
    table.add_column("Side")
    table.add_column("Market")
    table.add_column("Amount", justify="right")
    table.add_column("Reason")
    for order in orders:
        style = "red" if order.side == "SELL" else "green"
        table.add_row(f"[{style}]{order.side}[/{style}]", order.market_id, f"${order.amount:.2f}", order.reason)
    console.print(table)


if __name__ == "__main__":
    app()
