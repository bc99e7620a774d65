"""Extractor - Phase 1 of the Evaluation Pipeline.

Turns a free-text architecture description into a structured
ArchitectureSummary using a fixed table of keyword and quantity matchers.
Handles the messy reality of hand-written descriptions: vendor synonyms,
negations ("no backups") and spelled-out numbers.

Resolution policy:
- Every rule is applied; matching is case-insensitive.
- Per field, the candidate with the longest matched text wins.
- Ties keep the rule that appears first in ``EXTRACTION_RULES``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .schema import (
    ArchitectureSummary,
    CachingLayer,
    CdnType,
    ComputeModel,
    ContainerOrchestration,
    DatabaseType,
    ExtractionResult,
    LoadBalancerType,
    MonitoringLevel,
    ScalingType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchRule:
    """Maps a regex to a value for one summary field.

    A rule with ``value=None`` is a quantity rule: the value is parsed from
    the pattern's first capture group.
    """
    field: str
    pattern: str
    value: Any = None


NUMBER_WORDS = {
    "one": 1, "single": 1, "a single": 1,
    "two": 2, "a pair of": 2, "a couple of": 2,
    "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "a dozen": 12,
}

MAGNITUDE_SUFFIXES = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "million": 1_000_000,
}

_COUNT = r"(\d+|a single|single|a pair of|a couple of|a dozen|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve)"
_USERS = r"(\d[\d,]*(?:\.\d+)?\s*(?:million|thousand|k|m)?)\b\+?"
_FILLER = r"(?:[\w.-]+\s+){0,2}?"
_COMPUTE_NOUNS = r"(?:instances?|servers?|vms?|virtual machines?|nodes?|hosts?|containers?|droplets?|machines?|pods?|tasks?)"
# Data-tier words that make "N <word> instance" a database or cache count.
_DATA_TIER = r"(?:rds|aurora|databases?|db|sql|mysql|postgres(?:ql)?|mongo(?:db)?|redis|memcached|elasticache|cache|replicas?|read)"
_COMPUTE_FILLER = rf"(?:(?!{_DATA_TIER}\b)[\w.-]+\s+){{0,2}}?"


def _neg(body: str) -> str:
    """Pattern for a negated mention of ``body``.

    Covers prefix forms ("no backups", "without a WAF") and suffix forms
    ("encryption disabled", "backups are not configured").
    """
    return (
        rf"(?:\b(?:no|without|lacks?|lacking|missing|not using|never)\s+(?:[\w-]+\s+)?(?:{body})\b"
        rf"|\b(?:{body})\s+(?:is\s+|are\s+)?(?:disabled|not configured|not enabled|turned off)\b)"
    )


# Table position is the tie-break priority. Keep entries for a field together.
EXTRACTION_RULES: tuple[MatchRule, ...] = (
    # --- Compute model -------------------------------------------------------
    MatchRule("compute_model", r"\b(?:ec2|compute|vm) instances?\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bec2\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bvirtual machines?\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bvms?\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bcompute engine\b", ComputeModel.VM),
    MatchRule("compute_model", r"(?<!sql )\bservers?\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bdroplets?\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bbare[- ]metal\b", ComputeModel.VM),
    MatchRule("compute_model", r"\bcontaineri[sz]ed\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bcontainers?\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bdocker\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bfargate\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\b(?:eks|aks|gke|ecs|kubernetes|k8s) clusters?\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bkubernetes\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bk8s\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bcloud run\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\bcontainer apps?\b", ComputeModel.CONTAINER),
    MatchRule("compute_model", r"\b(?:aws )?lambda\b", ComputeModel.SERVERLESS),
    MatchRule("compute_model", r"\bserverless\b", ComputeModel.SERVERLESS),
    MatchRule("compute_model", r"\bazure functions?\b", ComputeModel.SERVERLESS),
    MatchRule("compute_model", r"\bcloud functions?\b", ComputeModel.SERVERLESS),
    MatchRule("compute_model", r"\belastic beanstalk\b", ComputeModel.PAAS),
    MatchRule("compute_model", r"\bapp service\b", ComputeModel.PAAS),
    MatchRule("compute_model", r"\bapp engine\b", ComputeModel.PAAS),
    MatchRule("compute_model", r"\bheroku\b", ComputeModel.PAAS),

    # --- Compute count -------------------------------------------------------
    MatchRule("compute_count", rf"\b{_COUNT}\s+{_COMPUTE_FILLER}{_COMPUTE_NOUNS}\b"),

    # --- Scaling -------------------------------------------------------------
    MatchRule("scaling_type", r"\bauto[- ]?scal\w*", ScalingType.AUTO),
    MatchRule("scaling_type", r"\bhorizontal pod autoscal\w*", ScalingType.AUTO),
    MatchRule("scaling_type", r"\bhpa\b", ScalingType.AUTO),
    MatchRule("scaling_type", r"\b(?:vm |virtual machine )?scale sets?\b", ScalingType.AUTO),
    MatchRule("scaling_type", r"\bmanaged instance groups?\b", ScalingType.AUTO),
    MatchRule("scaling_type", r"\belastic(?:ally)? scal\w*", ScalingType.AUTO),
    MatchRule("scaling_type", r"\bmanual(?:ly)? scal\w*", ScalingType.MANUAL),
    MatchRule("scaling_type", r"\bscaled? (?:up|out) manually\b", ScalingType.MANUAL),
    MatchRule("scaling_type", _neg(r"auto[- ]?scal\w*|scal\w*"), ScalingType.NONE),
    MatchRule("scaling_type", r"\b(?:fixed|static) (?:capacity|size|fleet)\b", ScalingType.NONE),

    # --- Database ------------------------------------------------------------
    MatchRule("database_type", r"\brds (?:for )?postgres(?:ql)?\b", DatabaseType.RDS_POSTGRESQL),
    MatchRule("database_type", r"\bpostgres(?:ql)? (?:on )?rds\b", DatabaseType.RDS_POSTGRESQL),
    MatchRule("database_type", r"\brds (?:for )?(?:mysql|mariadb)\b", DatabaseType.RDS_MYSQL),
    MatchRule("database_type", r"\b(?:mysql|mariadb) (?:on )?rds\b", DatabaseType.RDS_MYSQL),
    MatchRule("database_type", r"\baurora(?: postgres(?:ql)?| mysql| serverless)?\b", DatabaseType.AURORA),
    MatchRule("database_type", r"\brds\b", DatabaseType.RDS),
    MatchRule("database_type", r"\brelational database service\b", DatabaseType.RDS),
    MatchRule("database_type", r"\bazure sql(?: database)?\b", DatabaseType.AZURE_SQL),
    MatchRule("database_type", r"\bcloud sql\b", DatabaseType.CLOUD_SQL),
    MatchRule("database_type", r"\bpostgres(?:ql)?\b", DatabaseType.POSTGRESQL),
    MatchRule("database_type", r"\b(?:mysql|mariadb)\b", DatabaseType.MYSQL),
    MatchRule("database_type", r"\b(?:microsoft )?sql server\b", DatabaseType.SQL_SERVER),
    MatchRule("database_type", r"\bmssql\b", DatabaseType.SQL_SERVER),
    MatchRule("database_type", r"\boracle(?: database| db)?\b", DatabaseType.ORACLE),
    MatchRule("database_type", r"\bmongo(?:db)?(?: atlas)?\b", DatabaseType.MONGODB),
    MatchRule("database_type", r"\bdocumentdb\b", DatabaseType.MONGODB),
    MatchRule("database_type", r"\bdynamo(?:db)?\b", DatabaseType.DYNAMODB),
    MatchRule("database_type", r"\bcosmos ?db\b", DatabaseType.COSMOSDB),
    MatchRule("database_type", r"\bfirestore\b", DatabaseType.FIRESTORE),
    MatchRule("database_type", r"\bcassandra\b", DatabaseType.CASSANDRA),
    MatchRule("database_type", r"\bkeyspaces\b", DatabaseType.CASSANDRA),
    MatchRule("database_type", r"\b(?:no|without)\s+(?:a\s+)?(?:databases?|db)\s*(?:[.,;]|$)", DatabaseType.NONE),

    MatchRule("database_multi_az", r"\bmulti[- ]?az\b", True),
    MatchRule("database_multi_az", r"\bmulti[- ]availability[- ]zones?\b", True),
    MatchRule("database_multi_az", r"\bzone[- ]redundant\b", True),
    MatchRule("database_multi_az", r"\b(?:standby|failover) (?:instance|replica|database)\b", True),
    MatchRule("database_multi_az", r"\bhigh[- ]availability (?:database|db)\b", True),
    MatchRule("database_multi_az", r"\bsingle[- ]az\b", False),
    MatchRule("database_multi_az", r"\bsingle availability zone\b", False),
    MatchRule("database_multi_az", _neg(r"multi[- ]?az"), False),

    MatchRule("database_replicas", rf"\b{_COUNT}\s+(?:read[- ])?replicas?\b"),
    MatchRule("database_replicas", r"\bread[- ]replicas?\b", 1),
    MatchRule("database_replicas", _neg(r"read[- ]replicas?|replicas?"), 0),

    # --- Caching -------------------------------------------------------------
    MatchRule("caching_layer", r"\bredis\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\belasticache(?: for)? redis\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\bredis (?:elasticache|cache|cluster)\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\bazure cache for redis\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\bmemorystore\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\belasticache\b", CachingLayer.REDIS),
    MatchRule("caching_layer", r"\bmemcached?\b", CachingLayer.MEMCACHED),
    MatchRule("caching_layer", r"\belasticache(?: for)? memcached\b", CachingLayer.MEMCACHED),
    MatchRule("caching_layer", _neg(r"cach(?:e|ing)(?: layer)?"), CachingLayer.NONE),

    # --- Load balancing ------------------------------------------------------
    MatchRule("load_balancer", r"\balb\b", LoadBalancerType.APPLICATION),
    MatchRule("load_balancer", r"\bapplication load balanc\w*", LoadBalancerType.APPLICATION),
    MatchRule("load_balancer", r"\bapplication gateway\b", LoadBalancerType.APPLICATION),
    MatchRule("load_balancer", r"\bhttps? load balanc\w*", LoadBalancerType.APPLICATION),
    MatchRule("load_balancer", r"\bnlb\b", LoadBalancerType.NETWORK),
    MatchRule("load_balancer", r"\bnetwork load balanc\w*", LoadBalancerType.NETWORK),
    MatchRule("load_balancer", r"\bazure load balancer\b", LoadBalancerType.NETWORK),
    MatchRule("load_balancer", r"\belb\b", LoadBalancerType.CLASSIC),
    MatchRule("load_balancer", r"\bclassic load balanc\w*", LoadBalancerType.CLASSIC),
    MatchRule("load_balancer", r"\b(?:nginx|haproxy|envoy|traefik)\b", LoadBalancerType.SOFTWARE),
    MatchRule("load_balancer", r"\bload[- ]balanc\w*", LoadBalancerType.GENERIC),
    MatchRule("load_balancer", _neg(r"load[- ]balanc\w*"), LoadBalancerType.NONE),

    # --- CDN -----------------------------------------------------------------
    MatchRule("cdn", r"\bcloudfront\b", CdnType.CLOUDFRONT),
    MatchRule("cdn", r"\b(?:azure )?front door\b", CdnType.AZURE_FRONT_DOOR),
    MatchRule("cdn", r"\bazure cdn\b", CdnType.AZURE_CDN),
    MatchRule("cdn", r"\bcloud cdn\b", CdnType.CLOUD_CDN),
    MatchRule("cdn", r"\bcloudflare\b", CdnType.CLOUDFLARE),
    MatchRule("cdn", r"\bakamai\b", CdnType.AKAMAI),
    MatchRule("cdn", r"\bfastly\b", CdnType.FASTLY),
    MatchRule("cdn", r"\bcdn\b", CdnType.GENERIC),
    MatchRule("cdn", r"\bcontent delivery network\b", CdnType.GENERIC),
    MatchRule("cdn", _neg(r"cdn|content delivery network"), CdnType.NONE),

    # --- Network security ----------------------------------------------------
    MatchRule("vpc", r"\bvpcs?\b", True),
    MatchRule("vpc", r"\bvnets?\b", True),
    MatchRule("vpc", r"\bvirtual (?:private )?(?:cloud|network)s?\b", True),
    MatchRule("vpc", _neg(r"vpc|vnet"), False),

    MatchRule("private_subnets", r"\bprivate subnets?\b", True),
    MatchRule("private_subnets", r"\bisolated subnets?\b", True),
    MatchRule("private_subnets", r"\bprivate (?:endpoints?|link|networking)\b", True),
    MatchRule("private_subnets", _neg(r"private subnets?"), False),
    MatchRule("private_subnets", r"\bpublic subnets? only\b", False),

    MatchRule("waf", r"\bwaf\b", True),
    MatchRule("waf", r"\bweb application firewall\b", True),
    MatchRule("waf", r"\bcloud armor\b", True),
    MatchRule("waf", _neg(r"waf|web application firewall"), False),

    MatchRule("security_groups", r"\bsecurity groups?\b", True),
    MatchRule("security_groups", r"\bnetwork security groups?\b", True),
    MatchRule("security_groups", r"\bnsgs?\b", True),
    MatchRule("security_groups", r"\bfirewall rules?\b", True),
    MatchRule("security_groups", r"\bnetwork acls?\b", True),
    MatchRule("security_groups", _neg(r"security groups?|firewall rules?|firewall"), False),
    MatchRule("security_groups", r"\bopen to (?:the )?(?:internet|world)\b", False),
    MatchRule("security_groups", r"\b0\.0\.0\.0/0\b", False),

    # --- Data protection and identity ----------------------------------------
    MatchRule("encryption", r"\bencrypt(?:ed|ion)\b(?! in transit)", True),
    MatchRule("encryption", r"\bencrypt(?:ed|ion) at rest\b", True),
    MatchRule("encryption", r"\bkms\b", True),
    MatchRule("encryption", r"\bkey vault\b", True),
    MatchRule("encryption", r"\bcustomer[- ]managed keys?\b", True),
    MatchRule("encryption", _neg(r"encrypt(?:ion|ed)(?: at rest)?(?! in transit)"), False),
    MatchRule("encryption", r"\bunencrypted\b", False),
    MatchRule("encryption", r"\bnot encrypted\b", False),

    MatchRule("ssl_tls", r"\bssl\b", True),
    MatchRule("ssl_tls", r"\btls\b", True),
    MatchRule("ssl_tls", r"\bhttps\b", True),
    MatchRule("ssl_tls", r"\bacm certificates?\b", True),
    MatchRule("ssl_tls", r"\bcertificate manager\b", True),
    MatchRule("ssl_tls", r"\bencrypt(?:ed|ion) in transit\b", True),
    MatchRule("ssl_tls", _neg(r"ssl|tls|https|encryption in transit"), False),
    MatchRule("ssl_tls", r"\b(?:plain|only) http\b", False),
    MatchRule("ssl_tls", r"\bhttp only\b", False),

    MatchRule("iam_configured", r"\biam(?: roles?| policies)?\b", True),
    MatchRule("iam_configured", r"\brbac\b", True),
    MatchRule("iam_configured", r"\brole[- ]based access(?: control)?\b", True),
    MatchRule("iam_configured", r"\bleast[- ]privilege\b", True),
    MatchRule("iam_configured", r"\bmanaged identit(?:y|ies)\b", True),
    MatchRule("iam_configured", r"\bservice accounts?\b", True),
    MatchRule("iam_configured", r"\b(?:entra id|azure ad|sso)\b", True),
    MatchRule("iam_configured", _neg(r"iam|rbac|access control"), False),
    MatchRule("iam_configured", r"\bhard[- ]?coded credentials\b", False),
    MatchRule("iam_configured", r"\bshared (?:root|admin) (?:account|credentials?)\b", False),

    # --- Operations ----------------------------------------------------------
    MatchRule("monitoring", r"\b(?:cloudwatch|azure monitor|stackdriver|cloud monitoring)(?: monitoring| alarms| metrics| logs)?\b", MonitoringLevel.BASIC),
    MatchRule("monitoring", r"\bmonitor(?:ing|ed)\b", MonitoringLevel.BASIC),
    MatchRule("monitoring", r"\balarms?\b", MonitoringLevel.BASIC),
    MatchRule("monitoring", r"\b(?:datadog|new relic|dynatrace|prometheus|grafana|splunk|elk stack)(?: monitoring| apm| dashboards?)?\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\b(?:aws )?x-ray\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\bopentelemetry\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\bdistributed tracing\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\bapplication insights\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\bapm\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", r"\bobservability\b", MonitoringLevel.ADVANCED),
    MatchRule("monitoring", _neg(r"monitoring|observability|alerting|alarms"), MonitoringLevel.NONE),

    MatchRule("ci_cd", r"\bci ?/ ?cd\b", True),
    MatchRule("ci_cd", r"\bcicd\b", True),
    MatchRule("ci_cd", r"\bcontinuous (?:integration|delivery|deployment)\b", True),
    MatchRule("ci_cd", r"\b(?:github actions|gitlab ci|jenkins|circleci|codepipeline|azure devops|azure pipelines)\b", True),
    MatchRule("ci_cd", r"\bargo ?cd\b", True),
    MatchRule("ci_cd", r"\bdeployment pipelines?\b", True),
    MatchRule("ci_cd", _neg(r"ci ?/ ?cd|cicd|pipelines?|automated deployments?"), False),
    MatchRule("ci_cd", r"\bmanual deployments?\b", False),
    MatchRule("ci_cd", r"\bdeploy(?:ed|s)? manually\b", False),

    MatchRule("container_orchestration", r"\becs\b", ContainerOrchestration.ECS),
    MatchRule("container_orchestration", r"\belastic container service\b", ContainerOrchestration.ECS),
    MatchRule("container_orchestration", r"\bfargate\b", ContainerOrchestration.ECS),
    MatchRule("container_orchestration", r"\b(?:amazon |aws )?eks(?: clusters?)?\b", ContainerOrchestration.EKS),
    MatchRule("container_orchestration", r"\belastic kubernetes service\b", ContainerOrchestration.EKS),
    MatchRule("container_orchestration", r"\baks(?: clusters?)?\b", ContainerOrchestration.AKS),
    MatchRule("container_orchestration", r"\bazure kubernetes service\b", ContainerOrchestration.AKS),
    MatchRule("container_orchestration", r"\bgke(?: clusters?)?\b", ContainerOrchestration.GKE),
    MatchRule("container_orchestration", r"\bgoogle kubernetes engine\b", ContainerOrchestration.GKE),
    MatchRule("container_orchestration", r"\bkubernetes\b", ContainerOrchestration.KUBERNETES),
    MatchRule("container_orchestration", r"\bk8s\b", ContainerOrchestration.KUBERNETES),
    MatchRule("container_orchestration", r"\bopenshift\b", ContainerOrchestration.OPENSHIFT),
    MatchRule("container_orchestration", r"\bnomad\b", ContainerOrchestration.NOMAD),
    MatchRule("container_orchestration", r"\bdocker swarm\b", ContainerOrchestration.DOCKER_SWARM),

    MatchRule("serverless_components", r"\b(\d+|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|a dozen)\s+(?:[\w-]+\s+){0,2}?(?:functions|lambdas)\b"),
    MatchRule("serverless_components", r"\b(?:aws )?lambda(?: functions?)?\b", 1),
    MatchRule("serverless_components", r"\b(?:azure|cloud) functions?\b", 1),
    MatchRule("serverless_components", r"\bstep functions\b", 1),

    # --- Resilience ----------------------------------------------------------
    MatchRule("multi_region", r"\bmulti[- ]region\b", True),
    MatchRule("multi_region", r"\b(?:multiple|several|two|three|\d+) regions\b", True),
    MatchRule("multi_region", r"\bcross[- ]region\b", True),
    MatchRule("multi_region", r"\bactive[- ]active\b", True),
    MatchRule("multi_region", r"\bgeo[- ]?(?:redundant|replicat\w*|distributed)\b", True),
    MatchRule("multi_region", r"\bglobal tables?\b", True),
    MatchRule("multi_region", r"\bsingle[- ]region\b", False),
    MatchRule("multi_region", r"\b(?:one|a single) region\b", False),
    MatchRule("multi_region", _neg(r"multi[- ]region|dr region"), False),

    MatchRule("backup_strategy", r"\bbackups?\b", True),
    MatchRule("backup_strategy", r"\bbacked up\b", True),
    MatchRule("backup_strategy", r"\b(?:daily|nightly|hourly|automated|scheduled) (?:backups?|snapshots?)\b", True),
    MatchRule("backup_strategy", r"\bsnapshots?\b", True),
    MatchRule("backup_strategy", r"\bpoint[- ]in[- ]time recovery\b", True),
    MatchRule("backup_strategy", r"\bpitr\b", True),
    MatchRule("backup_strategy", r"\bdisaster recovery\b", True),
    MatchRule("backup_strategy", _neg(r"backups?|snapshots?|disaster recovery"), False),
    MatchRule("backup_strategy", r"\bnot backed up\b", False),

    # --- Purchasing ----------------------------------------------------------
    MatchRule("spot_instances", r"\bspot(?: instances?| vms?| fleet| capacity)?\b", True),
    MatchRule("spot_instances", r"\bpreemptible(?: vms?| instances?)?\b", True),
    MatchRule("spot_instances", _neg(r"spot(?: instances?)?"), False),
    MatchRule("spot_instances", r"\b(?:all|only) on[- ]demand\b", False),

    MatchRule("reserved_instances", r"\breserved (?:instances?|capacity)\b", True),
    MatchRule("reserved_instances", r"\bsavings plans?\b", True),
    MatchRule("reserved_instances", r"\bcommitted use(?: discounts?)?\b", True),
    MatchRule("reserved_instances", _neg(r"reserved instances?|savings plans?"), False),

    # --- Application shape ---------------------------------------------------
    MatchRule("api_gateway", r"\bapi gateway\b", True),
    MatchRule("api_gateway", r"\bapi management\b", True),
    MatchRule("api_gateway", r"\b(?:apim|apigee|kong)\b", True),
    MatchRule("api_gateway", _neg(r"api gateway"), False),

    MatchRule("microservices", r"\bmicro[- ]?services?\b", True),
    MatchRule("microservices", r"\bservice mesh\b", True),
    MatchRule("microservices", r"\b(?:istio|linkerd)\b", True),
    MatchRule("microservices", r"\bmonolith(?:ic)?\b", False),
    MatchRule("microservices", _neg(r"micro[- ]?services?"), False),

    MatchRule("estimated_users", rf"\b{_USERS}\s+{_FILLER}(?:users|customers|visitors|subscribers)\b"),
)


class Extractor:
    """Extracts an ArchitectureSummary from free text.

    Never raises on arbitrary input. Fields without any matching rule keep
    their sentinel defaults and lower the reported confidence.
    """

    def __init__(self, rules: tuple[MatchRule, ...] = EXTRACTION_RULES):
        self.rules = rules
        self._compiled = [
            (rule, re.compile(rule.pattern, re.IGNORECASE)) for rule in rules
        ]

    def extract(self, text: Optional[str]) -> tuple[ArchitectureSummary, float]:
        """Extract a summary and the recognized-field fraction."""
        result = self.extract_detailed(text)
        return result.summary, result.confidence

    def extract_detailed(self, text: Optional[str]) -> ExtractionResult:
        """Extract a summary with the recognized and unresolved field lists."""
        normalized = self._normalize_text(text)

        # field -> (match length, value); strict '>' keeps the earliest rule on ties
        best: dict[str, tuple[int, Any]] = {}
        for rule, regex in self._compiled:
            match = self._longest_match(regex, normalized)
            if match is None:
                continue
            value = self._rule_value(rule, match)
            if value is None:
                continue
            length = len(match.group(0))
            current = best.get(rule.field)
            if current is None or length > current[0]:
                best[rule.field] = (length, value)

        values = {field: value for field, (_, value) in best.items()}
        self._apply_implied_defaults(values)

        all_fields = ArchitectureSummary.field_names()
        recognized = [f for f in all_fields if f in best]
        unresolved = [f for f in all_fields if f not in best]
        confidence = round(len(recognized) / len(all_fields), 2)

        logger.debug(
            "Extracted %d/%d fields (confidence %.2f)",
            len(recognized), len(all_fields), confidence,
        )

        return ExtractionResult(
            summary=ArchitectureSummary(**values),
            confidence=confidence,
            recognized_fields=recognized,
            unresolved_fields=unresolved,
        )

    def _normalize_text(self, text: Optional[str]) -> str:
        """Collapse whitespace and unify dash variants."""
        if not text:
            return ""
        normalized = str(text).replace("–", "-").replace("—", "-")
        return re.sub(r"\s+", " ", normalized).strip()

    def _longest_match(self, regex: re.Pattern, text: str) -> Optional[re.Match]:
        """Return the longest match of a rule, the earliest on equal length."""
        longest = None
        for match in regex.finditer(text):
            if longest is None or len(match.group(0)) > len(longest.group(0)):
                longest = match
        return longest

    def _rule_value(self, rule: MatchRule, match: re.Match) -> Any:
        """Resolve the value a matched rule assigns."""
        if rule.value is not None:
            return rule.value
        return parse_quantity(match.group(1))

    def _apply_implied_defaults(self, values: dict[str, Any]) -> None:
        """Fill counts implied by a named compute tier."""
        model = values.get("compute_model")
        if model is not None and model.is_provisioned() and not values.get("compute_count"):
            values["compute_count"] = 1


def parse_quantity(text: Optional[str]) -> Optional[int]:
    """Parse '3', '10,000', '50k', '1.5 million' or 'two' into an integer.

    Returns None for text that is not a quantity.
    """
    if not text:
        return None
    cleaned = text.strip().lower().replace(",", "")
    if cleaned in NUMBER_WORDS:
        return NUMBER_WORDS[cleaned]

    match = re.fullmatch(r"(\d+(?:\.\d+)?)\s*(million|thousand|k|m)?", cleaned)
    if not match:
        return None
    number = float(match.group(1))
    multiplier = MAGNITUDE_SUFFIXES.get(match.group(2) or "", 1)
    return int(round(number * multiplier))
