from typing import Iterable, Optional

from charads.services.records import Verification, normalize_term


# Terms accepted without review. Stored normalized (upper case).
BUILTIN_TECH_TERMS = frozenset("""
AI API AJAX ALGORITHM ANDROID ANGULAR APACHE ARRAY ASCII ASSEMBLY AWS AZURE
BACKEND BANDWIDTH BASH BINARY BIOS BITCOIN BLOCKCHAIN BLUETOOTH BOOLEAN BROWSER BUG BYTE
CACHE CLOUD COMPILER CPU CRYPTOGRAPHY CSS CURSOR
DATABASE DEBUGGER DEVOPS DHCP DJANGO DNS DOCKER DOMAIN DRIVER
ENCRYPTION ETHERNET EXCEL
FIREWALL FIRMWARE FLASK FORTRAN FRAMEWORK FRONTEND FTP FUNCTION
GIT GITHUB GOOGLE GPU GRAPHQL GUI
HADOOP HARDWARE HASH HEAP HTML HTTP HTTPS HYPERVISOR
IDE INTERNET IOS IP IPV6
JAVA JAVASCRIPT JENKINS JQUERY JSON JWT
KERNEL KOTLIN KUBERNETES
LAMBDA LAN LAPTOP LINUX LOOP
MALWARE MEMORY MICROSOFT MODEM MONGODB MOTHERBOARD MYSQL
NETWORK NGINX NODE NODEJS NOSQL NPM
OAUTH OBJECT OPENAI ORACLE
PASSWORD PERL PHISHING PHP PIXEL POINTER POSTGRESQL PROCESSOR PROTOCOL PYTHON
QUERY QUEUE
RAM REACT RECURSION REDIS REGEX REST ROUTER RUBY RUST
SAAS SCALA SDK SERVER SHELL SOCKET SPRING SQL SSD SSH SSL STACK SWIFT
TABLET TCP TENSORFLOW TERMINAL THREAD TLS TYPESCRIPT
UBUNTU UDP UML UNICODE UNIX URL USB UX
VARIABLE VIRTUALIZATION VIRUS VPN VSCODE VUE
WAN WEBPACK WEBSOCKET WIFI WINDOWS WORDPRESS
XML YAML ZIP
""".split()) | frozenset({'MACHINE LEARNING', 'OPEN SOURCE', 'VISUAL STUDIO'})


class TermClassifier:
    """Recognizes known tech terms.

    ``classify`` only ever answers ``ACCEPTED`` or ``UNSET``; rejection is a
    reviewer decision.
    """

    def __init__(self, extra_terms: Optional[Iterable[str]] = None):
        terms = set(BUILTIN_TECH_TERMS)
        for t in extra_terms or ():
            n = normalize_term(t)
            if n:
                terms.add(n)
        self._terms = frozenset(terms)

    @classmethod
    def from_config(cls, app) -> 'TermClassifier':
        path = app.config.get('TERM_DICTIONARY_PATH')
        if not path:
            return cls()
        with open(path, encoding='utf-8') as fh:
            extra = [line for line in fh if line.strip() and not line.lstrip().startswith('#')]
        app.logger.info(f"[dictionary] loaded {len(extra)} extra terms from {path}")
        return cls(extra)

    def __contains__(self, term) -> bool:
        return normalize_term(term) in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def classify(self, term: str) -> Verification:
        if term in self:
            return Verification.ACCEPTED
        return Verification.UNSET
