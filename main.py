#!/usr/bin/env python3
"""
IQAES - Integrated Quranic Analysis and Exploration System
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, List, Dict, Any

import click
import yaml
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.panel import Panel

from iqaes.errors import IQAESError
from iqaes.explorer import ConceptExplorer, IntegratedAnalysis, ReasoningEngine
from iqaes.explorer.models import AnalysisResult, Entity, Pattern, Relationship
from iqaes.kg import KnowledgeIntegrator, KnowledgeNode, VerificationOutcome

logger = logging.getLogger(__name__)


def load_env_file():
    """Load environment variables from .env file if it exists."""
    env_file = Path(".env")
    if env_file.exists():
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ[key] = value


def load_config(config_path: str = "config/config.yaml") -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
        return config or {}
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"❌ Error parsing configuration file: {e}")
        sys.exit(1)


def setup_logging(config: dict):
    """Setup logging configuration."""
    log_config = config.get("logging", {})
    log_level = getattr(logging, log_config.get("level", "INFO"))
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    log_file = log_config.get("file", "logs/iqaes.log")
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def parse_attributes(pairs: List[str]) -> Dict[str, str]:
    """Turn ``key=value`` strings into an attribute dict."""
    attributes = {}
    for pair in pairs:
        if '=' not in pair:
            raise click.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--attr")
        key, value = pair.split('=', 1)
        attributes[key.strip()] = value.strip()
    return attributes


class IQAESystem:
    """Wires the analysis, reasoning, exploration and knowledge graph components."""

    def __init__(self, config: dict):
        self.config = config
        self.console = Console()

        self.analysis = IntegratedAnalysis(config)
        self.reasoning = ReasoningEngine(config.get("reasoning", {}))
        self.explorer = ConceptExplorer(config.get("explorer", {}))
        self.kg = KnowledgeIntegrator(config.get("kg", {}))

        self.debug_mode = config.get("debug", {}).get("enabled", False)

    async def analyze(self, text: str, parameters: Optional[Dict[str, Any]] = None) -> AnalysisResult:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True
        ) as progress:
            task = progress.add_task("Analyzing text...", total=None)
            result = await self.analysis.analyze_text(text, parameters)
            progress.update(task, description="Analysis complete")

        return result

    def display_patterns(self, patterns: List[Pattern]):
        table = Table(title="Patterns")
        table.add_column("Type", style="cyan")
        table.add_column("Text", style="white")
        table.add_column("Position", style="dim")
        table.add_column("Confidence", style="green")

        for pattern in patterns:
            table.add_row(
                pattern.type,
                pattern.text,
                f"{pattern.start}-{pattern.end}",
                f"{pattern.confidence:.2f}"
            )

        self.console.print(table)

    def display_entities(self, entities: List[Entity]):
        table = Table(title="Entities")
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Category", style="white")
        table.add_column("Occurrences", style="green")

        for entity in entities:
            table.add_row(
                entity.name,
                entity.type,
                str(entity.attributes.get("category", "")),
                str(len(entity.references))
            )

        self.console.print(table)

    def display_relationships(self, relationships: List[Relationship], entities: List[Entity]):
        names = {entity.id: entity.name for entity in entities}

        table = Table(title="Relationships")
        table.add_column("Source", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Target", style="cyan")
        table.add_column("Confidence", style="green")

        for relationship in relationships:
            table.add_row(
                names.get(relationship.source_entity_id, relationship.source_entity_id),
                relationship.type,
                names.get(relationship.target_entity_id, relationship.target_entity_id),
                f"{relationship.confidence:.2f}"
            )

        self.console.print(table)

    def display_analysis(self, result: AnalysisResult):
        self.display_patterns(result.patterns)
        self.display_entities(result.entities)
        self.display_relationships(result.relationships, result.entities)

        self.console.print(Panel(
            f"Analysis {result.id}\n"
            f"{len(result.patterns)} patterns, {len(result.entities)} entities, "
            f"{len(result.relationships)} relationships in {result.metadata['duration_ms']:.1f} ms",
            title="[bold blue]Summary[/bold blue]",
            border_style="blue"
        ))

    def display_node(self, node: KnowledgeNode, outcomes: Optional[List[VerificationOutcome]] = None):
        table = Table(title=f"Node {node.name}")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("ID", node.id)
        table.add_row("Type", node.type)
        table.add_row("Source", node.source)
        table.add_row("Confidence", f"{node.confidence:.3f}")
        for key, value in node.attributes.items():
            table.add_row(f"attr:{key}", str(value))

        self.console.print(table)

        if outcomes:
            verification_table = Table(title="Verification")
            verification_table.add_column("Method", style="cyan")
            verification_table.add_column("Result", style="white")
            verification_table.add_column("Confidence", style="green")

            for outcome in outcomes:
                verification_table.add_row(
                    outcome.method,
                    "✅ Pass" if outcome.result else "❌ Fail",
                    f"{outcome.confidence:.2f}"
                )

            self.console.print(verification_table)

    def show_stats(self):
        """Display system statistics."""
        kg_stats = self.kg.get_statistics()
        concept_stats = self.explorer.concept_store.get_stats()

        kg_table = Table(title="Knowledge Graph Statistics")
        kg_table.add_column("Metric", style="cyan")
        kg_table.add_column("Value", style="white")

        kg_table.add_row("Nodes", str(kg_stats["node_count"]))
        kg_table.add_row("Sources", str(kg_stats["source_count"]))
        kg_table.add_row("Verified Nodes", str(kg_stats["verified_node_count"]))
        kg_table.add_row("Verification Rate", f"{kg_stats['verification_rate']:.2%}")
        for relationship_type, count in sorted(kg_stats["relationship_type_counts"].items()):
            kg_table.add_row(f"Edges: {relationship_type}", str(count))

        concept_table = Table(title="Concept Store Statistics")
        concept_table.add_column("Metric", style="cyan")
        concept_table.add_column("Value", style="white")

        concept_table.add_row("Total Concepts", str(concept_stats["total_concepts"]))
        concept_table.add_row("Unknown Concepts", str(concept_stats["unknown_concepts"]))
        concept_table.add_row("Types", ", ".join(concept_stats["types"]))

        self.console.print(kg_table)
        self.console.print(concept_table)


@click.group()
@click.option('--config', '-c', default='config/config.yaml', help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, debug):
    """IQAES command line interface."""
    load_env_file()

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)
    ctx.obj['debug'] = debug

    if debug:
        ctx.obj['config'].setdefault('logging', {})['level'] = 'DEBUG'
        ctx.obj['config'].setdefault('debug', {})['enabled'] = True

    setup_logging(ctx.obj['config'])


def run_command(ctx, coro):
    """Run a coroutine, reporting IQAES errors instead of a traceback."""
    try:
        return asyncio.run(coro)
    except IQAESError as e:
        Console().print(f"[red]❌ {e}[/red]")
        ctx.exit(1)


@cli.command()
@click.argument('text')
@click.option('--min-confidence', '-m', type=float, default=None, help='Minimum confidence for results')
@click.option('--no-semantic', is_flag=True, help='Skip semantic (theme) patterns')
@click.pass_context
def analyze(ctx, text, min_confidence, no_semantic):
    """Run the full analysis pipeline on TEXT."""
    system = IQAESystem(ctx.obj['config'])

    parameters = {"include_semantic_patterns": not no_semantic}
    if min_confidence is not None:
        parameters["min_confidence"] = min_confidence

    result = run_command(ctx, system.analyze(text, parameters))
    system.display_analysis(result)


@cli.command()
@click.argument('text')
@click.option('--min-confidence', '-m', type=float, default=None, help='Minimum pattern confidence')
@click.pass_context
def patterns(ctx, text, min_confidence):
    """Detect linguistic and semantic patterns in TEXT."""
    system = IQAESystem(ctx.obj['config'])

    parameters = {}
    if min_confidence is not None:
        parameters["min_confidence"] = min_confidence

    found = run_command(ctx, system.analysis.pattern_detector.detect_patterns(text, parameters))
    system.display_patterns(found)


@cli.command()
@click.argument('text')
@click.pass_context
def entities(ctx, text):
    """Extract entities from TEXT and the relationships between them."""
    system = IQAESystem(ctx.obj['config'])

    async def run_extraction():
        extracted = await system.analysis.entity_extractor.extract_entities(text, {})
        relationships = await system.analysis.relationship_discoverer.discover_relationships(extracted, text, {})
        return extracted, relationships

    extracted, relationships = run_command(ctx, run_extraction())
    system.display_entities(extracted)
    system.display_relationships(relationships, extracted)


@cli.command()
@click.argument('concept')
@click.option('--max-depth', '-d', type=int, default=None, help='Maximum exploration depth')
@click.pass_context
def explore(ctx, concept, max_depth):
    """Explore CONCEPT and its related concepts."""
    system = IQAESystem(ctx.obj['config'])

    parameters = {}
    if max_depth is not None:
        parameters["max_depth"] = max_depth

    exploration = run_command(ctx, system.explorer.explore_concept(concept, parameters))

    table = Table(title=f"Exploration of {exploration.concept} ({exploration.status.value})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Related", style="white")

    for record in exploration.results:
        table.add_row(record.id, record.name, record.type, ", ".join(record.references))

    system.console.print(table)


@cli.command()
@click.argument('source_id')
@click.argument('target_id')
@click.option('--min-confidence', '-m', type=float, default=None, help='Minimum relation confidence')
@click.pass_context
def relations(ctx, source_id, target_id, min_confidence):
    """Discover relations between two knowledge items."""
    system = IQAESystem(ctx.obj['config'])

    parameters = {}
    if min_confidence is not None:
        parameters["min_confidence"] = min_confidence

    found = run_command(ctx, system.reasoning.discover_relations(source_id, target_id, parameters))

    table = Table(title=f"Relations {source_id} -> {target_id}")
    table.add_column("Type", style="magenta")
    table.add_column("Confidence", style="green")
    table.add_column("Evidence", style="white")

    for relation in found:
        table.add_row(
            relation.type,
            f"{relation.confidence:.2f}",
            "; ".join(f"{e.source}: {e.text}" for e in relation.evidence)
        )

    system.console.print(table)


@cli.command()
@click.argument('concept_id')
@click.option('--min-confidence', '-m', type=float, default=None, help='Minimum inference confidence')
@click.pass_context
def infer(ctx, concept_id, min_confidence):
    """Infer relations from CONCEPT_ID to every other knowledge item."""
    system = IQAESystem(ctx.obj['config'])

    parameters = {}
    if min_confidence is not None:
        parameters["min_confidence"] = min_confidence

    inferences = run_command(ctx, system.reasoning.infer_knowledge(concept_id, parameters))

    table = Table(title=f"Inferences for {concept_id}")
    table.add_column("Target", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Confidence", style="green")

    for inference in inferences:
        target = system.reasoning.get_knowledge_item(inference.target_id)
        table.add_row(
            target.name if target else inference.target_id,
            inference.relation_type,
            f"{inference.confidence:.2f}"
        )

    system.console.print(table)


@cli.command(name='add-node')
@click.argument('node_type')
@click.argument('name')
@click.argument('source')
@click.option('--attr', '-a', multiple=True, help='Attribute as key=value (repeatable)')
@click.option('--no-verify', is_flag=True, help='Skip verification')
@click.pass_context
def add_node(ctx, node_type, name, source, attr, no_verify):
    """Add a knowledge node to the graph."""
    system = IQAESystem(ctx.obj['config'])
    attributes = parse_attributes(attr)

    async def run_add():
        node = await system.kg.create_node(node_type, name, source, attributes, verify=False)
        outcomes = [] if no_verify else await system.kg.verify_node(node.id)
        return node, outcomes

    node, outcomes = run_command(ctx, run_add())
    system.display_node(node, outcomes)


@cli.command()
@click.argument('source_id')
@click.argument('target_id')
@click.argument('relationship_type')
@click.option('--confidence', type=float, default=1.0, help='Relationship confidence')
@click.option('--bidirectional', '-b', is_flag=True, help='Also add the reverse relationship')
@click.pass_context
def link(ctx, source_id, target_id, relationship_type, confidence, bidirectional):
    """Create a relationship between two knowledge nodes."""
    system = IQAESystem(ctx.obj['config'])

    if system.kg.create_relationship(source_id, target_id, relationship_type, confidence, bidirectional):
        system.console.print(f"[green]✅ Linked {source_id} -[{relationship_type}]-> {target_id}[/green]")
    else:
        system.console.print("[red]❌ Source or target node not found[/red]")
        ctx.exit(1)


@cli.command()
@click.argument('node_id')
@click.pass_context
def verify(ctx, node_id):
    """Run all verification methods against a knowledge node."""
    system = IQAESystem(ctx.obj['config'])

    outcomes = run_command(ctx, system.kg.verify_node(node_id))
    system.display_node(system.kg.get_node(node_id), outcomes)


@cli.command()
@click.argument('source_id')
@click.argument('target_id')
@click.option('--max-depth', '-d', type=int, default=None, help='Maximum path length')
@click.pass_context
def paths(ctx, source_id, target_id, max_depth):
    """Find paths between two knowledge nodes."""
    system = IQAESystem(ctx.obj['config'])

    found = system.kg.find_paths(source_id, target_id, max_depth)
    if not found:
        system.console.print("[yellow]No paths found[/yellow]")
        return

    for path in found:
        names = []
        for node_id in path:
            node = system.kg.get_node(node_id)
            # edge targets may point at ids with no stored node
            names.append(node.name if node is not None else node_id)
        system.console.print(" → ".join(names))


@cli.command()
@click.argument('query')
@click.pass_context
def search(ctx, query):
    """Search knowledge nodes by name or attribute."""
    system = IQAESystem(ctx.obj['config'])

    table = Table(title=f"Search results for '{query}'")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Source", style="white")
    table.add_column("Confidence", style="green")

    for node in system.kg.search(query):
        table.add_row(node.id, node.name, node.type, node.source, f"{node.confidence:.3f}")

    system.console.print(table)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show system statistics."""
    system = IQAESystem(ctx.obj['config'])
    system.show_stats()


@cli.command()
@click.argument('file_path')
@click.pass_context
def export(ctx, file_path):
    """Export the knowledge graph to a JSON file."""
    system = IQAESystem(ctx.obj['config'])

    try:
        system.kg.export_graph(file_path)
        system.console.print(f"[green]✅ Exported {len(system.kg.node_store)} nodes to {file_path}[/green]")
    except OSError as e:
        system.console.print(f"[red]❌ Failed to export graph: {e}[/red]")
        ctx.exit(1)


@cli.command(name='import-graph')
@click.argument('file_path', type=click.Path(exists=True))
@click.pass_context
def import_graph(ctx, file_path):
    """Import knowledge nodes from a JSON file."""
    system = IQAESystem(ctx.obj['config'])

    try:
        system.kg.import_graph(file_path)
        system.console.print(f"[green]✅ Graph now contains {len(system.kg.node_store)} nodes[/green]")
    except (OSError, ValueError, KeyError) as e:
        system.console.print(f"[red]❌ Failed to import graph: {e}[/red]")
        ctx.exit(1)


if __name__ == "__main__":
    cli()
