"""Stage command tables per project type and deployment strategy."""

from deploy_engine.models.enums import DeploymentStrategy, ProjectType

BUILD_COMMANDS: dict[ProjectType, list[str]] = {
    ProjectType.FLUTTER: ["flutter pub get", "flutter analyze", "flutter build linux --release"],
    ProjectType.NODEJS: ["npm ci", "npm run build"],
    ProjectType.PYTHON: ["pip install -r requirements.txt", "python -m build"],
    ProjectType.DOTNET: ["dotnet restore", "dotnet build --configuration Release --no-restore"],
    ProjectType.GENERIC: ['echo "Building project"'],
}

TEST_COMMANDS: dict[ProjectType, list[str]] = {
    ProjectType.FLUTTER: ["flutter test", "flutter test integration_test/"],
    ProjectType.NODEJS: ["npm test"],
    ProjectType.PYTHON: ["pytest"],
    ProjectType.DOTNET: ["dotnet test --no-build --configuration Release"],
    ProjectType.GENERIC: ['echo "Running tests"'],
}

SECURITY_SCAN_COMMANDS: dict[ProjectType, list[str]] = {
    ProjectType.FLUTTER: ["dart pub deps", "flutter analyze --fatal-infos"],
    ProjectType.NODEJS: ["npm audit", "npm audit fix --dry-run"],
    ProjectType.PYTHON: ["pip-audit", "bandit -r ."],
    ProjectType.DOTNET: ["dotnet list package --vulnerable"],
    ProjectType.GENERIC: ['echo "Running security scan"'],
}

PACKAGE_COMMANDS: dict[ProjectType, list[str]] = {
    ProjectType.FLUTTER: ["tar -czf app-${BUILD_NUMBER:-latest}.tar.gz build/"],
    ProjectType.NODEJS: ["npm pack", "tar -czf app-${BUILD_NUMBER:-latest}.tar.gz dist/"],
    ProjectType.PYTHON: ["tar -czf app-${BUILD_NUMBER:-latest}.tar.gz dist/"],
    ProjectType.DOTNET: ["dotnet publish --configuration Release --output ./publish", "tar -czf app-${BUILD_NUMBER:-latest}.tar.gz publish/"],
    ProjectType.GENERIC: ["tar -czf app-${BUILD_NUMBER:-latest}.tar.gz ."],
}

DEPLOY_STEPS: dict[DeploymentStrategy, list[str]] = {
    DeploymentStrategy.STANDARD: ["Deploying application"],
    DeploymentStrategy.BLUE_GREEN: ["Deploying to idle slot", "Running slot health checks", "Switching traffic to new version"],
    DeploymentStrategy.ROLLING: ["Deploying to instances gradually", "Monitoring deployment progress"],
}


def deploy_commands(strategy: DeploymentStrategy, environment: str) -> list[str]:
    steps = DEPLOY_STEPS[strategy]
    return [
        f'echo "Deploying to {environment} environment ({strategy} strategy)"',
        *(f'echo "{step}"' for step in steps),
        'echo "Application deployed successfully"',
    ]
