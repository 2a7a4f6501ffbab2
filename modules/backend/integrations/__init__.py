"""
Third-party Integrations.

Clients for the impact APIs (Cloverly, 1ClickImpact, NationBuilder),
the ERC-4337 paymaster and bundler services, and the SBT contract.
Every outbound HTTP call goes through IntegrationClient.
"""
